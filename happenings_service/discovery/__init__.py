from happenings_service.discovery.categories import CategoryResolver
from happenings_service.discovery.service import EventService

__all__ = ["CategoryResolver", "EventService"]
