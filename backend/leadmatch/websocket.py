"""Server-push notification channel using Socket.IO."""

import socketio
import logging
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*',
    logger=False,
    engineio_logger=False
)

socket_app = socketio.ASGIApp(
    sio,
    socketio_path='/socket.io'
)

# Active connections by user
active_connections: Dict[str, Set[str]] = {}


def user_room(user_id: str) -> str:
    return f'user_{user_id}'


# Socket.IO Event Handlers

@sio.event
async def connect(sid, environ):
    logger.info(f"Client connected: {sid}")
    await sio.emit('connected', {
        'message': 'Connected to LeadMatch notifications',
        'sid': sid
    }, room=sid)


@sio.event
async def disconnect(sid):
    logger.info(f"Client disconnected: {sid}")

    for user_id, sids in list(active_connections.items()):
        if sid in sids:
            sids.remove(sid)
            if not sids:
                del active_connections[user_id]


@sio.event
async def join_user(sid, data):
    """Join the per-user room that receives that user's notifications."""
    user_id = (data or {}).get('user_id')

    if not user_id:
        await sio.emit('error', {
            'message': 'user_id is required'
        }, room=sid)
        return

    await sio.enter_room(sid, user_room(user_id))
    active_connections.setdefault(user_id, set()).add(sid)

    logger.info(f"Client {sid} joined user room: {user_id}")
    await sio.emit('joined_user', {
        'user_id': user_id,
        'message': f'Joined notifications for user {user_id}'
    }, room=sid)


@sio.event
async def ping(sid, data):
    await sio.emit('pong', {
        'timestamp': (data or {}).get('timestamp')
    }, room=sid)


async def push_notification(trigger: str, payload: Dict[str, Any], user_id: Optional[str] = None):
    """Send one trigger event to a user's room, or to everyone when no user is given."""
    message = {'type': trigger, **payload}
    if user_id:
        await sio.emit(trigger, message, room=user_room(user_id))
    else:
        await sio.emit(trigger, message)


def get_connection_stats():
    return {
        'total_connections': sum(len(sids) for sids in active_connections.values()),
        'users_connected': len(active_connections),
    }
