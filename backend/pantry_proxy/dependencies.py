"""
Pantry Proxy Backend — FastAPI Dependencies
============================================

What:  Injectable accessors for the services built by the app factory.
How:   create_app() stores each service on `app.state`; these functions read
       them back from the current request. Routes never construct services
       and never touch Settings or the environment themselves.
"""

from fastapi import Request

from pantry_proxy.services.ai_relay import AIRelayService
from pantry_proxy.services.attachment_service import AttachmentService
from pantry_proxy.services.document_client import DocumentClient
from pantry_proxy.services.record_service import RecordService


def get_document_client(request: Request) -> DocumentClient:
    return request.app.state.document_client


def get_locations_service(request: Request) -> RecordService:
    return request.app.state.locations_service


def get_food_service(request: Request) -> RecordService:
    return request.app.state.food_service


def get_attachment_service(request: Request) -> AttachmentService:
    return request.app.state.attachment_service


def get_ai_relay(request: Request) -> AIRelayService:
    return request.app.state.ai_relay
