# nim_forwarder/core/forwarder.py
import os
import httpx
import logging
from .config import Settings
from nim_forwarder.models.api import ForwarderResponse, NimChatRequest

logging.basicConfig(level=logging.INFO)
# Use specific logger name
logger = logging.getLogger(' ' * 5 + os.path.basename(__file__))

CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"


async def forward_chat_completion(
    nim_request: NimChatRequest,
    client: httpx.AsyncClient,
    app_settings: Settings,
) -> ForwarderResponse:
    """
    Sends one chat completion request to NVIDIA NIM. Never retries.

    Failures are returned, not raised: `status_code` is set only when NIM itself
    answered with an error status.
    """
    model_name = nim_request.model

    if not app_settings.nim_api_key:
        logger.error("API key for NVIDIA NIM is required but not configured.")
        return ForwarderResponse(success=False, model_used=model_name, error="API key for NVIDIA NIM (NIM_API_KEY) is not configured.")

    headers = {
        "Authorization": f"Bearer {app_settings.nim_api_key}",
        "Content-Type": "application/json",
    }
    # exclude_none keeps the thinking extension out of the body when it is disabled
    payload = nim_request.model_dump(exclude_none=True)
    target_url = f"{app_settings.nim_api_base.rstrip('/')}{CHAT_COMPLETIONS_ENDPOINT}"

    try:
        logger.info(f"Forwarding to NVIDIA NIM: URL={target_url}, Payload_Model={model_name}")
        response = await client.post(target_url, headers=headers, json=payload)
        logger.info(f"Received response from NVIDIA NIM: Status Code={response.status_code}")

        response.raise_for_status() # Raise exception for 4xx/5xx errors

        try:
            return ForwarderResponse(success=True, data=response.json(), model_used=model_name)
        except ValueError as e: # JSONDecodeError or UnicodeDecodeError
            error_msg = f"NVIDIA NIM returned {response.status_code} but the body is not valid JSON: {e}"
            logger.error(f"{error_msg}. Response text: {response.text[:500]}...")
            # No status_code: a 2xx with an unusable body is our failure, not NIM's
            return ForwarderResponse(success=False, model_used=model_name, error=error_msg, error_details=response.text)

    except httpx.HTTPStatusError as e:
        logger.warning(f"Error from NVIDIA NIM ({e.response.status_code}). Response body: {e.response.text[:500]}...")
        try:
            error_details = e.response.json()
        except ValueError: # JSONDecodeError or UnicodeDecodeError
            error_details = e.response.text
        return ForwarderResponse(
            success=False,
            model_used=model_name,
            error=f"Request failed with status code {e.response.status_code}",
            status_code=e.response.status_code,
            error_details=error_details,
        )
    except httpx.RequestError as e:
        # Covers connection errors, DNS errors, timeouts etc.
        error_msg = str(e) or type(e).__name__
        logger.error(f"Network error requesting NVIDIA NIM: {type(e).__name__} - {error_msg}")
        return ForwarderResponse(success=False, model_used=model_name, error=error_msg)
