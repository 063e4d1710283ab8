from __future__ import annotations

from typing import Any, Dict, List, Optional


PING = "PING"
PONG = "PONG"
RUN_EXTRACTION = "RUN_EXTRACTION"
EXTRACTION_RESULT = "EXTRACTION_RESULT"
EXTRACTION_ERROR = "EXTRACTION_ERROR"

RESPONSE_TYPES = (EXTRACTION_RESULT, EXTRACTION_ERROR)


def ping() -> Dict[str, Any]:
    return {"type": PING}


def pong() -> Dict[str, Any]:
    return {"type": PONG}


def started() -> Dict[str, Any]:
    return {"status": "started"}


def run_extraction(request_id: str) -> Dict[str, Any]:
    return {"type": RUN_EXTRACTION, "requestId": request_id}


def extraction_result(
    request_id: Optional[str],
    payload: Dict[str, Any],
    related: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    return {
        "type": EXTRACTION_RESULT,
        "requestId": request_id,
        "payload": payload,
        "relatedRecords": related or [],
    }


def extraction_error(request_id: Optional[str], message: str, stack: Optional[str] = None) -> Dict[str, Any]:
    return {
        "type": EXTRACTION_ERROR,
        "requestId": request_id,
        "error": {"message": message, "stack": stack},
    }


def is_pong(reply: Any) -> bool:
    return isinstance(reply, dict) and reply.get("type") == PONG


def is_response_for(message: Any, request_id: str) -> bool:
    return (
        isinstance(message, dict)
        and message.get("type") in RESPONSE_TYPES
        and message.get("requestId") == request_id
    )
