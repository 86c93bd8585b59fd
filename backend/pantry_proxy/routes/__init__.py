# Routes package init
"""
Pantry Proxy Backend — API Routes Package
=========================================

What:  HTTP route handlers; all but health are mounted under API_PREFIX.

Route Inventory:
    - records.py:      GET/POST /locations, GET/POST /food,
                       PATCH /food/{id}, DELETE /food/{id}
    - attachments.py:  GET/POST /attachments
    - ai.py:           POST /analyzeImage, POST /pantryChat
    - health.py:       GET /health

Design Principle:
    Routes are THIN. They pull data out of the request, call one service
    method, and relay or serialize the result. Translation rules live in
    the services.
"""
