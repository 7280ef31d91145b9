from fastapi import APIRouter

from app.api.deps import get_stream_client
from app.schemas.chat import TokenRequest, TokenResponse
from app.services.tokens import issue_token

router = APIRouter(tags=["chat"])


@router.post("/token", response_model=TokenResponse)
def create_token(payload: TokenRequest):
    """Upsert the user in the chat provider and return a client session token."""
    chat = get_stream_client()
    return issue_token(chat, payload.user_id, payload.name, role=payload.role)
