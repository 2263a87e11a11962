# src/shared/__init__.py
"""
Общий код между слоями сервиса.

Модули:
- models: DTO запросов/ответов и обёртка ApiResponse
"""

__all__: list[str] = []
