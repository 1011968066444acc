from datetime import datetime, timezone

from api.app.domain.models import PeekedMessage
from api.app.domain.requeue import clone_for_requeue


def test_clone_copies_body_and_envelope_verbatim():
    source = PeekedMessage(
        sequence_number=11,
        message_id="ORD-7",
        correlation_id="corr-7",
        session_id="s-1",
        content_type="application/json",
        subject="Order",
        application_properties={"orderNumber": "ORD-7", "retries": 3, "flag": True},
        enqueued_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        delivery_count=10,
        dead_letter_reason="MaxDeliveryCountExceeded",
        body=b"\x00\x01{\"a\": 1}\xff",
    )

    clone = clone_for_requeue(source)

    assert clone.body == source.body
    assert clone.application_properties == source.application_properties
    assert clone.application_properties is not source.application_properties
    assert clone.message_id == "ORD-7"
    assert clone.correlation_id == "corr-7"
    assert clone.session_id == "s-1"
    assert clone.content_type == "application/json"
    assert clone.subject == "Order"
    assert clone.time_to_live is None
    assert not hasattr(clone, "sequence_number")
