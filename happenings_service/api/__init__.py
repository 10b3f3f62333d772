from happenings_service.api import categories, events, favorites, notifications, users

routers = [
  categories.router,
  events.router,
  favorites.router,
  notifications.router,
  users.router,
]

__all__ = ["routers"]
