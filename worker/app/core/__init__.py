SERVICE_NAME = "worker"
