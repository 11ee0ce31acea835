from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from .broadcaster import WebSocketBroadcaster, get_tracking_hub, order_channel, request_channel

router = APIRouter()

# action -> (join?, channel builder)
ACTIONS = {
    "join_order_tracking": (True, order_channel),
    "leave_order_tracking": (False, order_channel),
    "join_request_tracking": (True, request_channel),
    "leave_request_tracking": (False, request_channel),
}

@router.get("/health")
async def health_check(hub: WebSocketBroadcaster = Depends(get_tracking_hub)):
    return {"service": "tracking", "status": "running", "subscribers": hub.subscriber_count()}


@router.websocket("/ws")
async def tracking_socket(websocket: WebSocket, hub: WebSocketBroadcaster = Depends(get_tracking_hub)):
    """
    Clients send {"action": "join_order_tracking", "orderId": 42} to subscribe
    and receive {"event": ..., "data": ...} frames for that order.
    """
    await websocket.accept()
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except ValueError:
                # Not JSON; answered like any other unknown action
                message = None
            action = ACTIONS.get(message.get("action")) if isinstance(message, dict) else None
            entity_id = None
            if action is not None:
                entity_id = message.get("orderId", message.get("requestId"))
            if action is None or entity_id is None:
                await websocket.send_json({"event": "error", "data": {"message": "Unknown action"}})
                continue

            join, channel_for = action
            channel = channel_for(entity_id)
            if join:
                hub.join(websocket, channel)
            else:
                hub.leave(websocket, channel)
            await websocket.send_json({"event": "joined" if join else "left", "data": {"channel": channel}})
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(websocket)
