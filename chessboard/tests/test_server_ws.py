from fastapi.testclient import TestClient

from chessboard.board import Board
from chessboard.game_state import ChessGame
from chessboard.server import app, new_room, rooms

PROMOTION = [
    ".......k",
    "...P....",
    "........",
    "........",
    "........",
    "........",
    "........",
    "....K...",
]


def seed_room(game_id: str, rows) -> None:
    room = new_room()
    room["game"] = ChessGame(board=Board.from_codes(rows))
    rooms[game_id] = room


def test_ws_initial_state():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-1") as ws:
        initial = ws.receive_json()
        # Basic shape checks
        assert initial["type"] == "state"
        assert "fen" in initial
        assert initial["gameOver"] in (True, False)
        assert initial["turn"] in ("white", "black")
        assert len(initial["board"]) == 8


def test_ws_legal_move_updates_state():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-2") as ws:
        initial = ws.receive_json()

        # e2e4 should be legal as first move
        ws.send_json({
            "type": "move",
            "gameId": "test-game-2",
            "from": "e2",
            "to": "e4",
            "promotion": None,
        })

        updated = ws.receive_json()
        assert updated["type"] == "state"
        # Board FEN should change after a legal move
        assert updated["fen"] != initial["fen"]
        assert updated["lastMove"] == {"from": "e2", "to": "e4"}
        assert updated["turn"] == "black"


def test_ws_illegal_move_does_not_change_state():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-3") as ws:
        initial = ws.receive_json()

        # e2e5 is illegal from the starting position
        ws.send_json({
            "type": "move",
            "gameId": "test-game-3",
            "from": "e2",
            "to": "e5",
            "promotion": None,
        })

        # Server should send back current state (unchanged FEN)
        state = ws.receive_json()
        assert state["type"] == "state"
        assert state["fen"] == initial["fen"]
        assert state["turn"] == "white"


def test_ws_bad_square_names_are_ignored():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-bad") as ws:
        initial = ws.receive_json()

        ws.send_json({"type": "move", "from": "z9", "to": "e4"})
        assert ws.receive_json()["fen"] == initial["fen"]

        ws.send_text("not json")
        assert ws.receive_json()["fen"] == initial["fen"]


def test_ws_reset_resets_board():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-4") as ws:
        initial = ws.receive_json()

        # Make a legal move first
        ws.send_json({
            "type": "move",
            "gameId": "test-game-4",
            "from": "e2",
            "to": "e4",
            "promotion": None,
        })
        moved_state = ws.receive_json()
        assert moved_state["fen"] != initial["fen"]

        # Now reset
        ws.send_json({
            "type": "reset",
            "gameId": "test-game-4",
        })
        reset_state = ws.receive_json()

        # After reset, FEN should be back to starting position
        assert reset_state["fen"].startswith("rnbqkbnr")
        assert reset_state["turn"] == "white"
        assert reset_state["lastMove"] is None


def test_ws_select_then_move():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-select") as ws:
        ws.receive_json()

        ws.send_json({"type": "select", "square": "g1"})
        selected = ws.receive_json()
        assert selected["selected"] == {"row": 7, "col": 6}

        ws.send_json({"type": "select", "square": "f3"})
        moved = ws.receive_json()
        assert moved["selected"] is None
        assert moved["board"][5][5] == "N"
        assert moved["turn"] == "black"


def test_ws_move_with_promotion_choice():
    seed_room("test-game-promo", PROMOTION)
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-promo") as ws:
        ws.receive_json()

        ws.send_json({"type": "move", "from": "d7", "to": "d8", "promotion": "q"})
        state = ws.receive_json()

        assert state["board"][0][3] == "Q"
        assert state["pendingPromotion"] is None
        assert state["turn"] == "black"


def test_ws_promote_message_and_error_reporting():
    seed_room("test-game-promo-2", PROMOTION)
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-promo-2") as ws:
        ws.receive_json()

        ws.send_json({"type": "move", "from": "d7", "to": "d8", "promotion": None})
        pending = ws.receive_json()
        assert pending["pendingPromotion"] == {"row": 0, "col": 3, "square": "d8"}
        assert pending["turn"] == "white"

        ws.send_json({"type": "promote", "piece": "king"})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["code"] == "InvalidPromotion"
        still_pending = ws.receive_json()
        assert still_pending["pendingPromotion"] is not None

        ws.send_json({"type": "promote", "piece": "rook"})
        resolved = ws.receive_json()
        assert resolved["board"][0][3] == "R"
        assert resolved["turn"] == "black"


def test_ws_promote_without_pending_pawn_reports_error():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-promo-3") as ws:
        initial = ws.receive_json()

        ws.send_json({"type": "promote", "piece": "queen"})
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["code"] == "InvalidPromotion"
        assert ws.receive_json()["fen"] == initial["fen"]


def test_ws_king_capture_ends_game():
    seed_room("test-game-win", [
        "....kR..",
        "........",
        "........",
        "........",
        "........",
        "........",
        "........",
        "....K...",
    ])
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-win") as ws:
        ws.receive_json()

        ws.send_json({"type": "move", "from": "f8", "to": "e8"})
        state = ws.receive_json()
        assert state["winner"] == "white"
        assert state["gameOver"] is True


def test_ws_spectator_cannot_move_once_seats_are_taken():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/test-game-seats") as host, \
         client.websocket_connect("/ws/game/test-game-seats") as spectator:
        initial = host.receive_json()
        spectator.receive_json()

        host.send_json({"type": "join", "role": "host", "preferredColor": "white"})
        joined = host.receive_json()
        assert joined == {"type": "joined", "youAre": "white", "gameId": "test-game-seats"}
        host.receive_json()

        spectator.send_json({"type": "move", "from": "e2", "to": "e4"})
        state = spectator.receive_json()
        assert state["fen"] == initial["fen"]


def test_two_clients_same_game_see_consistent_state():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/shared-game") as ws1, \
         client.websocket_connect("/ws/game/shared-game") as ws2:

        # Both should receive an initial state
        init1 = ws1.receive_json()
        init2 = ws2.receive_json()

        assert init1["type"] == "state"
        assert init2["type"] == "state"
        assert init1["fen"] == init2["fen"]

        # Client 1 plays a legal move
        ws1.send_json({
            "type": "move",
            "gameId": "shared-game",
            "from": "e2",
            "to": "e4",
            "promotion": None,
        })

        # Both clients should now receive the updated board
        upd1 = ws1.receive_json()
        upd2 = ws2.receive_json()

        assert upd1["type"] == "state"
        assert upd2["type"] == "state"

        # Both see the exact same FEN and last move
        assert upd1["fen"] == upd2["fen"]
        assert upd1["lastMove"] == {"from": "e2", "to": "e4"}
        assert upd2["lastMove"] == {"from": "e2", "to": "e4"}

        # Both see the pawn on e4 and black to move
        assert upd1["board"] == upd2["board"]
        assert upd2["board"][4][4] == "P"
        assert upd2["board"][6][4] == ""
        assert upd1["turn"] == upd2["turn"] == "black"

        # A second socket in the room can move for black and both see it
        ws2.send_json({"type": "move", "from": "e7", "to": "e5"})
        after1 = ws1.receive_json()
        after2 = ws2.receive_json()
        assert after1["board"][3][4] == after2["board"][3][4] == "p"
        assert after1["turn"] == "white"


def test_two_independent_games_do_not_interfere():
    client = TestClient(app)

    with client.websocket_connect("/ws/game/game-a") as ws_a, \
         client.websocket_connect("/ws/game/game-b") as ws_b:

        init_a = ws_a.receive_json()
        init_b = ws_b.receive_json()

        # Same starting FEN, but they are separate games
        assert init_a["fen"] == init_b["fen"]

        # Play a move in game A only
        ws_a.send_json({
            "type": "move",
            "gameId": "game-a",
            "from": "e2",
            "to": "e4",
            "promotion": None,
        })
        upd_a = ws_a.receive_json()

        # Now play a *different* move in game B
        ws_b.send_json({
            "type": "move",
            "gameId": "game-b",
            "from": "d2",
            "to": "d4",
            "promotion": None,
        })
        upd_b = ws_b.receive_json()

        # Each game should have its own FEN; neither overwrote the other
        assert upd_a["fen"] != init_a["fen"]
        assert upd_b["fen"] != init_b["fen"]
        assert upd_a["fen"] != upd_b["fen"]

        # Each game tracks its own lastMove
        assert upd_a["lastMove"] == {"from": "e2", "to": "e4"}
        assert upd_b["lastMove"] == {"from": "d2", "to": "d4"}

        # Each board holds only its own pawn push
        assert upd_a["board"][4][4] == "P" and upd_a["board"][4][3] == ""
        assert upd_b["board"][4][3] == "P" and upd_b["board"][4][4] == ""

        # Black replying in game A leaves game B's turn alone
        ws_a.send_json({"type": "move", "from": "d7", "to": "d5"})
        assert ws_a.receive_json()["turn"] == "white"
        assert rooms["game-b"]["game"].turn.value == "black"
