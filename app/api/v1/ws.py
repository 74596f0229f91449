import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from app.core.logger import get_logger
from app.core.security import InvalidToken, decode_identity
from app.services.signaling_service import SocketEvent, frame, hub

logger = get_logger("ws")

router = APIRouter()

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = Query(None)):
    try:
        identity = decode_identity(token or "")
    except InvalidToken:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    connection_id = await hub.connect(websocket, identity.id)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                await hub.send_local(connection_id, frame(SocketEvent.ERROR, {"message": "Frames must be JSON"}))
                continue
            if isinstance(message, dict) and message.get("event") == SocketEvent.DISCONNECT.value:
                await websocket.close()
                break
            await hub.dispatch(connection_id, message)
    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.error(f"WebSocket error for {identity.id}: {exc}", exc_info=exc)
    finally:
        await hub.disconnect(connection_id)
