SERVICE_NAME = "api"
