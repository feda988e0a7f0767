from typing import Any, Dict, Optional


def error_response(message: str, details: Optional[Any] = None) -> Dict[str, Any]:
    """
    Standard error response envelope. Used as HTTPException.detail so rejections
    carry the offending item or order ids back to the caller.
    """
    payload: Dict[str, Any] = {"message": message}
    if details is not None:
        payload["details"] = details
    return payload
