import chess

from chessboard.pieces import Color, Kind, Piece

SIZE = 8

STANDARD_LAYOUT = (
    "rnbqkbnr",
    "pppppppp",
    "........",
    "........",
    "........",
    "........",
    "PPPPPPPP",
    "RNBQKBNR",
)

Square = tuple[int, int]


def on_board(row: int, col: int) -> bool:
    return 0 <= row < SIZE and 0 <= col < SIZE


def square_name(row: int, col: int) -> str:
    """(7, 4) -> 'e1'. Row 0 is rank 8, column 0 is file a."""
    return chess.square_name(chess.square(col, SIZE - 1 - row))


def parse_square(name: str) -> Square:
    """'e1' -> (7, 4). Raises ValueError for anything that is not a square."""
    sq = chess.parse_square(name.strip().lower())
    return SIZE - 1 - chess.square_rank(sq), chess.square_file(sq)


class Board:
    """8x8 grid of pieces, rows top-to-bottom from black's back rank."""

    def __init__(self) -> None:
        self._grid: list[list[Piece | None]] = [[None] * SIZE for _ in range(SIZE)]

    @classmethod
    def standard(cls) -> "Board":
        return cls.from_codes(STANDARD_LAYOUT)

    @classmethod
    def from_codes(cls, rows) -> "Board":
        """Build a board from eight 8-character strings, '.' for an empty square."""
        rows = list(rows)
        if len(rows) != SIZE or any(len(r) != SIZE for r in rows):
            raise ValueError("Board layout must be 8 rows of 8 squares")
        board = cls()
        for r, line in enumerate(rows):
            for c, code in enumerate(line):
                if code != ".":
                    board._grid[r][c] = Piece.from_code(code)
        return board

    def copy(self) -> "Board":
        clone = Board()
        clone._grid = [list(row) for row in self._grid]
        return clone

    def piece_at(self, row: int, col: int) -> Piece | None:
        return self._grid[row][col]

    def is_empty(self, row: int, col: int) -> bool:
        return self._grid[row][col] is None

    def place(self, row: int, col: int, piece: Piece) -> None:
        self._grid[row][col] = piece

    def clear(self, row: int, col: int) -> None:
        self._grid[row][col] = None

    def move(self, from_row: int, from_col: int, to_row: int, to_col: int) -> None:
        self._grid[to_row][to_col] = self._grid[from_row][from_col]
        self._grid[from_row][from_col] = None

    def has_king(self, color: Color) -> bool:
        king = Piece(Kind.KING, color)
        return any(piece == king for row in self._grid for piece in row)

    def pieces(self):
        for r, row in enumerate(self._grid):
            for c, piece in enumerate(row):
                if piece is not None:
                    yield (r, c), piece

    def codes(self) -> list[list[str]]:
        return [[p.code if p else "" for p in row] for row in self._grid]

    def to_fen(self) -> str:
        """FEN piece-placement field of the current grid."""
        placement = chess.BaseBoard.empty()
        for (r, c), piece in self.pieces():
            placement.set_piece_at(
                chess.square(c, SIZE - 1 - r), chess.Piece.from_symbol(piece.code)
            )
        return placement.board_fen()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return self._grid == other._grid

    def __str__(self) -> str:
        return "\n".join(
            " ".join(p.symbol if p else "." for p in row) for row in self._grid
        )
