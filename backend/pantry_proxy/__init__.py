"""
Pantry Proxy Backend — Application Package Initializer
======================================================

What: Marks the `pantry_proxy` directory as a Python package.
Who:  Used by uvicorn (`pantry_proxy.main:create_app`), pytest, and the
      `pantry-proxy` console script.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │    Services (Translation / Relay)   │  ← Record, Attachment, AI relay
    ├─────────────────────────────────────┤
    │        Schemas (Pydantic models)    │  ← Wire shapes in and out
    ├─────────────────────────────────────┤
    │   Upstream clients (httpx)          │  ← Grist, AI microservice
    └─────────────────────────────────────┘

    Nothing is persisted here: every read goes back to the document service.
"""

__version__ = "1.0.0"
