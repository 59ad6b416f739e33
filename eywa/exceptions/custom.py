class ProviderError(Exception):
    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class GooglePlacesError(ProviderError):
    pass


class RateLimitError(ProviderError):
    def __init__(self, service: str):
        self.service = service
        super().__init__(f"Rate limit exceeded for {service}", status_code=429)


class NotConfiguredError(Exception):
    def __init__(self, service: str):
        self.service = service
        super().__init__(f"{service} API key not configured")


class ListingNotFoundError(Exception):
    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(f"Place not found: {external_id}")


class SyncInProgressError(Exception):
    def __init__(self, job_id: str | None = None):
        self.job_id = job_id
        super().__init__("A review sync job is already running")


class HotelNotFoundError(Exception):
    def __init__(self, hotel_id: str):
        self.hotel_id = hotel_id
        super().__init__(f"Hotel not found: {hotel_id}")


class AlreadyLinkedError(Exception):
    def __init__(self, hotel_id: str, source: str, external_id: str):
        self.hotel_id = hotel_id
        self.source = source
        self.external_id = external_id
        super().__init__(f"Hotel {hotel_id} already linked to {source} ({external_id})")


class UnsupportedSourceError(Exception):
    def __init__(self, source: str):
        self.source = source
        super().__init__(f"{source} integration not yet available")
