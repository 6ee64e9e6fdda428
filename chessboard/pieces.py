from dataclasses import dataclass
from enum import Enum


class Color(Enum):
    WHITE = "white"
    BLACK = "black"

    def opponent(self) -> "Color":
        return Color.BLACK if self is Color.WHITE else Color.WHITE

    @property
    def direction(self) -> int:
        """Row step of a forward pawn move (white advances toward row 0)."""
        return -1 if self is Color.WHITE else 1


class Kind(Enum):
    PAWN = "pawn"
    KNIGHT = "knight"
    BISHOP = "bishop"
    ROOK = "rook"
    QUEEN = "queen"
    KING = "king"


# Lowercase code letter per kind; white pieces use the uppercase form
KIND_CODES = {
    Kind.PAWN: "p",
    Kind.KNIGHT: "n",
    Kind.BISHOP: "b",
    Kind.ROOK: "r",
    Kind.QUEEN: "q",
    Kind.KING: "k",
}

PIECE_SYMBOLS = {
    "r": "♜", "n": "♞", "b": "♝", "q": "♛", "k": "♚", "p": "♟",
    "R": "♖", "N": "♘", "B": "♗", "Q": "♕", "K": "♔", "P": "♙",
}

PROMOTION_KINDS = (Kind.QUEEN, Kind.ROOK, Kind.BISHOP, Kind.KNIGHT)


@dataclass(frozen=True)
class Piece:
    kind: Kind
    color: Color

    @property
    def code(self) -> str:
        letter = KIND_CODES[self.kind]
        return letter.upper() if self.color is Color.WHITE else letter

    @property
    def symbol(self) -> str:
        return PIECE_SYMBOLS[self.code]

    @classmethod
    def from_code(cls, code: str) -> "Piece":
        """Build a piece from its letter, e.g. 'K' (white king) or 'p' (black pawn)."""
        for kind, letter in KIND_CODES.items():
            if code.lower() == letter:
                color = Color.WHITE if code.isupper() else Color.BLACK
                return cls(kind, color)
        raise ValueError(f"Unknown piece code: {code!r}")
