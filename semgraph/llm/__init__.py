"""
Text/embedding collaborators for semgraph.

Gemini (default) and OpenAI implementations behind one async interface.
"""

from .service import (
    AIService,
    CollaboratorError,
    GeminiService,
    OpenAIService,
    get_ai_service,
)

__all__ = [
    "AIService",
    "CollaboratorError",
    "GeminiService",
    "OpenAIService",
    "get_ai_service",
]
