from fastapi import APIRouter, Depends, HTTPException

from ..chat import ConversationNotFound
from ..dependencies import Services, get_services
from ..schemas import ChatRequest, ChatResponse, Conversation, CreateConversation

router = APIRouter(prefix="/api/chat", tags=["Chat"])


@router.post("/conversation")
async def create_conversation(data: CreateConversation, services: Services = Depends(get_services)):
    if not data.client_id:
        raise HTTPException(status_code=400, detail="Client ID is required")

    conversation = await services.chat.create_conversation(data.client_id)
    return {
        "id": conversation.id,
        "client_id": conversation.client_id,
        "status": conversation.status,
    }


@router.get("/conversation/{conversation_id}", response_model=Conversation)
async def get_conversation(conversation_id: str, services: Services = Depends(get_services)):
    conversation = await services.repository.get_conversation(conversation_id)
    if not conversation:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return conversation


@router.post("/message", response_model=ChatResponse)
async def send_message(data: ChatRequest, services: Services = Depends(get_services)):
    if not data.conversation_id or not data.client_id or not data.message:
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        return await services.chat.send_message(data.conversation_id, data.message)
    except ConversationNotFound:
        raise HTTPException(status_code=404, detail="Conversation not found")
