# Services package init
"""
Pantry Proxy Backend — Services Layer
=====================================

What:  Translation between the front end's REST calls and the upstream
       protocols, independent of HTTP routing.
How:   Each service is constructed with the Settings object and an httpx
       client by the app factory (main.create_app) and reached from routes
       through FastAPI dependencies (dependencies.py).

Service Inventory:
    - upstream.py:            shared timeout / error-text helpers
    - document_client.py:     DocumentClient, authenticated Grist transport
    - record_service.py:      RecordService (Locations, Food) + normalize_records
    - attachment_service.py:  AttachmentService (list, upload, unused sweep)
    - ai_relay.py:            AIRelayService (image analysis, pantry chat stream)
"""
