from typing import List, Optional


class NewsAggregatorError(Exception):
    pass


class ConfigurationMissingError(NewsAggregatorError):
    def __init__(self, missing: List[str]):
        self.missing = missing
        super().__init__(f"Missing required configuration: {', '.join(missing)}")


class ExternalServiceError(NewsAggregatorError):
    pass


class UpstreamUnavailableError(ExternalServiceError):
    pass


class DeserializationError(ExternalServiceError):
    def __init__(self, message: str, raw_payload: Optional[str] = None):
        self.raw_payload = raw_payload
        super().__init__(message)


class MailDeliveryError(ExternalServiceError):
    pass
