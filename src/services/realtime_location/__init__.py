# src/services/realtime_location/__init__.py
"""
Driver Location Service - сервис геолокации водителей.

Обеспечивает:
- Приём координат водителей (HTTP)
- Хранение позиций в GEO-индексе (Redis GEO или in-memory)
- Поиск ближайших водителей с расширяющимся радиусом
"""
