# Schemas package init
"""
Pantry Proxy Backend — Pydantic Schemas
=======================================

What:  Wire shapes exchanged with the front end and with the AI microservice.

Schema Inventory:
    - records.py:  DeleteResult (Record Proxy delete outcome)
    - ai.py:       PantryItem, PantryChatRequest, ChatMessage, ChatPayload,
                   AnalysisResult
    - common.py:   ErrorResponse, HealthResponse

Record bodies are NOT modelled here: the proxy forwards arbitrary field maps,
so they stay plain dicts (see services/record_service.normalize_records).
"""
