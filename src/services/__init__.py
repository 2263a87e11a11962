# src/services/__init__.py
"""
HTTP-сервисы приложения.

Сервисы:
- realtime_location: приём координат водителей и поиск ближайших
"""

__all__: list[str] = []
