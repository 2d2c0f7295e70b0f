# src/handlers/main.py
import json
import logging
from . import random_number

logger = logging.getLogger()
logger.setLevel(logging.INFO)

def handler(event, context):
    if not isinstance(event, dict):
        event = {}
    request_context = event.get("requestContext")
    if not isinstance(request_context, dict):
        request_context = {}
    http_info = request_context.get("http")
    if not isinstance(http_info, dict):
        http_info = {}
    path = event.get("rawPath") or http_info.get("path", "")
    method = http_info.get("method", "UNKNOWN")
    request_id = request_context.get("requestId") or getattr(context, "aws_request_id", "unknown")

    logger.info(
        json.dumps(
            {
                "event": "RequestReceived",
                "path": path,
                "method": method,
                "requestId": request_id,
            }
        )
    )
    return random_number.handler(event, context)
