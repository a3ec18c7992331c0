"""Helper modules for the printer installer (driver handling, queues, UI support)."""

__all__ = [
    "driver_fetcher",
    "driver_resolver",
    "font_resolver",
    "i18n",
    "queue_installer",
]
