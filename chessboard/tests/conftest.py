import pytest
from fastapi.testclient import TestClient

from chessboard.board import Board
from chessboard.game_state import ChessGame
from chessboard.pieces import Color
from chessboard.server import app


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def game() -> ChessGame:
    return ChessGame()


@pytest.fixture
def make_game():
    """Start a game from a hand-drawn position: eight strings, '.' for empty squares."""

    def _make(rows, turn: Color = Color.WHITE) -> ChessGame:
        return ChessGame(board=Board.from_codes(rows), turn=turn)

    return _make
