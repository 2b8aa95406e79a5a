from fastapi import Request

from modules.documents.schemas import RequestMetadata


def get_request_metadata(request: Request) -> RequestMetadata:
    """Dependency con la IP y el user-agent de quien llama"""
    return RequestMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
