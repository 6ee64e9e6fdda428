from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import asyncio
import json
import logging
import os
from typing import Dict, Set, Any
import random

from chessboard.board import parse_square
from chessboard.errors import InvalidPromotion
from chessboard.game_state import ChessGame

# ---- Config ----
LOG_LEVEL = os.environ.get("CHESSBOARD_LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get("CHESSBOARD_CORS_ORIGINS", "*").split(",")
    if origin.strip()
]

logging.basicConfig(level=LOG_LEVEL)
_log = logging.getLogger(__name__)

app = FastAPI(title="Chessboard")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---- Game room storage ----
Room = Dict[str, Any]
rooms: Dict[str, Room] = {}


def new_room() -> Room:
    return {
        "game": ChessGame(),
        "clients": set(),              # all sockets in this game
        "player_colors": {},           # websocket -> "white" / "black"
        "seats": {"white": None, "black": None},  # colour -> websocket
        "host_color": None,            # chosen by host
        "guest_color": None,
    }


def get_room(game_id: str) -> Room:
    room = rooms.get(game_id)
    if room is None:
        room = new_room()
        rooms[game_id] = room
        _log.info("Created room %s", game_id)
    return room


async def broadcast(room: Room) -> None:
    clients: Set[WebSocket] = room["clients"]
    if not clients:
        return

    payload = room["game"].state_payload()
    msg = json.dumps(payload)
    await asyncio.gather(
        *[ws.send_text(msg) for ws in list(clients)],
        return_exceptions=True,
    )


def error_payload(exc: InvalidPromotion) -> dict:
    return {"type": "error", "code": exc.error_code, "detail": exc.message}


def assign_host(room: Room, websocket: WebSocket, preferred_color: str | None) -> str:
    """Assign host colour and return it."""
    if preferred_color in ("white", "black"):
        host_color = preferred_color
    elif preferred_color == "random":
        host_color = random.choice(["white", "black"])
    else:
        host_color = "white"

    guest_color = "black" if host_color == "white" else "white"

    room["host_color"] = host_color
    room["guest_color"] = guest_color

    room["seats"][host_color] = websocket
    room["player_colors"][websocket] = host_color
    # guest seat will be filled when guest joins

    return host_color


def assign_guest(room: Room, websocket: WebSocket) -> str:
    """Assign guest to remaining colour and return it."""
    host_color = room.get("host_color") or "white"
    guest_color = room.get("guest_color") or ("black" if host_color == "white" else "white")

    room["guest_color"] = guest_color
    room["seats"][guest_color] = websocket
    room["player_colors"][websocket] = guest_color
    return guest_color


def may_act(room: Room, websocket: WebSocket) -> bool:
    """Once colours are handed out, only the player on turn may touch the board."""
    if not room.get("player_colors"):
        return True
    player_color = room["player_colors"].get(websocket)
    return player_color is not None and player_color == room["game"].turn.value


# ---- HTTP ----
@app.get("/api/game/{game_id}")
async def game_state(game_id: str) -> dict:
    room = rooms.get(game_id)
    if room is None:
        raise HTTPException(status_code=404, detail=f"No game {game_id!r}")
    return room["game"].state_payload()


# ---- WebSocket endpoint ----
@app.websocket("/ws/game/{game_id}")
async def ws_game(websocket: WebSocket, game_id: str) -> None:
    await websocket.accept()

    room = get_room(game_id)
    clients: Set[WebSocket] = room["clients"]
    game: ChessGame = room["game"]

    clients.add(websocket)
    _log.info("Client connected to %s (%d connected)", game_id, len(clients))

    async def send_state() -> None:
        await websocket.send_text(json.dumps(game.state_payload()))

    # Send initial state
    await send_state()

    try:
        while True:
            data = await websocket.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                await send_state()
                continue
            if not isinstance(msg, dict):
                await send_state()
                continue
            msg_type = msg.get("type")

            if msg_type == "join":
                role = msg.get("role")
                preferred = msg.get("preferredColor")
                if role == "host":
                    colour = assign_host(room, websocket, preferred)
                elif role == "guest":
                    colour = assign_guest(room, websocket)
                else:
                    # Unknown role: treat as spectator
                    colour = None
                _log.info("%s joined %s as %s", role, game_id, colour)

                ack = {
                    "type": "joined",
                    "youAre": colour,
                    "gameId": game_id,
                }
                await websocket.send_text(json.dumps(ack))
                await send_state()
                continue

            if msg_type == "reset":
                game.reset()
                await broadcast(room)
                continue

            if msg_type in ("select", "move", "promote") and not may_act(room, websocket):
                # Not your turn or spectator: no-op, send current state
                await send_state()
                continue

            if msg_type == "select":
                try:
                    row, col = parse_square(str(msg.get("square")))
                except ValueError:
                    await send_state()
                    continue
                game.select_square(row, col)
                await broadcast(room)
                continue

            if msg_type == "move":
                from_sq = msg.get("from")
                to_sq = msg.get("to")
                promo = msg.get("promotion")

                if not (from_sq and to_sq):
                    await send_state()
                    continue
                try:
                    from_row, from_col = parse_square(str(from_sq))
                    to_row, to_col = parse_square(str(to_sq))
                except ValueError:
                    await send_state()
                    continue

                moved = game.make_move(from_row, from_col, to_row, to_col)
                if moved and promo and game.pending_promotion is not None:
                    try:
                        game.choose_promotion(promo)
                    except InvalidPromotion as exc:
                        # Move stands; the player picks again with a "promote" message
                        await websocket.send_text(json.dumps(error_payload(exc)))
                if moved:
                    await broadcast(room)
                else:
                    await send_state()
                continue

            if msg_type == "promote":
                try:
                    game.choose_promotion(msg.get("piece"))
                except InvalidPromotion as exc:
                    await websocket.send_text(json.dumps(error_payload(exc)))
                    await send_state()
                    continue
                await broadcast(room)
                continue

            # Unknown message type: send current state back
            await send_state()

    except WebSocketDisconnect:
        clients.discard(websocket)
        _log.info("Client left %s", game_id)
        # Clean up colour assignments
        player_colors = room["player_colors"]
        if websocket in player_colors:
            colour = player_colors.pop(websocket)
            seats = room["seats"]
            if seats.get(colour) is websocket:
                seats[colour] = None
