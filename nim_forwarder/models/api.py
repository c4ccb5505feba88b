# nim_forwarder/models/api.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any


# --- Client (OpenAI) side ---

class ChatCompletionRequest(BaseModel):
    # Only the fields needed for translation; anything else the client sends is dropped.
    # Values are relayed as sent, so none of them are type-checked here.
    model: Any = Field(None, description="Client-facing model id, mapped to an NVIDIA NIM model.")
    messages: Any = None
    temperature: Any = None
    max_tokens: Any = None


class ChatMessage(BaseModel):
    role: Optional[str] = None # "system", "user", "assistant", ...
    content: Any = ""


class ChatChoice(BaseModel):
    index: Optional[int] = None
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    id: str
    object: str = "chat.completion"
    created: int
    model: Any = None # Echo of the client's model id, never the upstream one
    choices: List[ChatChoice]
    usage: Dict[str, Any]


class ModelCard(BaseModel):
    id: str
    object: str = "model"
    created: int
    owned_by: str


class ModelList(BaseModel):
    object: str = "list"
    data: List[ModelCard]


# --- Upstream (NVIDIA NIM) side ---

class NimChatRequest(BaseModel):
    model: str
    messages: Any = None
    temperature: Any
    max_tokens: Any
    # Present only when thinking mode is enabled
    extra_body: Optional[Dict[str, Any]] = None


class NimMessage(BaseModel):
    model_config = ConfigDict(extra='allow')

    role: Optional[str] = None
    content: Any = None
    reasoning_content: Optional[str] = None


class NimChoice(BaseModel):
    model_config = ConfigDict(extra='allow')

    index: Optional[int] = None
    message: NimMessage = Field(default_factory=NimMessage)
    finish_reason: Optional[str] = None


class NimChatResponse(BaseModel):
    model_config = ConfigDict(extra='allow')

    choices: List[NimChoice]
    usage: Optional[Dict[str, Any]] = None


# --- Internal ---

class ForwarderResponse(BaseModel):
    """Standardized result of the single upstream call"""
    success: bool
    model_used: Optional[str] = None
    data: Optional[Any] = None # Holds the successful response body from NIM
    error: Optional[str] = None # Holds a high-level error message
    status_code: Optional[int] = None # HTTP status code from NIM if it answered with an error
    error_details: Optional[Any] = None # Parsed JSON error body from NIM, or raw text


# --- Errors ---

class ErrorEnvelope(BaseModel):
    message: str
    type: str = "invalid_request_error"
    code: int


class ErrorResponse(BaseModel):
    """OpenAI compatible error body"""
    error: ErrorEnvelope
