"""
Mission Compass generation service.

Provides:
- Generation dispatcher with ordered model fallback (Gemini generateContent)
- FastAPI app for free chat and the guided mission questionnaire
"""
