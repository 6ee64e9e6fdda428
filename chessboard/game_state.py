import logging
from dataclasses import asdict, dataclass, replace

from chessboard.board import SIZE, Board, Square, on_board, square_name
from chessboard.errors import InvalidPromotion
from chessboard.pieces import KIND_CODES, PROMOTION_KINDS, Color, Kind, Piece

_log = logging.getLogger(__name__)

KING_HOME = {Color.WHITE: (7, 4), Color.BLACK: (0, 4)}
PAWN_HOME_ROW = {Color.WHITE: 6, Color.BLACK: 1}
EN_PASSANT_ROW = {Color.WHITE: 3, Color.BLACK: 4}
PROMOTION_ROW = {Color.WHITE: 0, Color.BLACK: 7}
ROOK_HOMES = {
    (7, 0): Color.WHITE,
    (7, 7): Color.WHITE,
    (0, 0): Color.BLACK,
    (0, 7): Color.BLACK,
}

# Accepted spellings for a promotion choice: "queen", "q", "Q", ...
_PROMOTION_NAMES = {kind.value: kind for kind in Kind}
_PROMOTION_NAMES.update({letter: kind for kind, letter in KIND_CODES.items()})


@dataclass
class CastlingRights:
    """Which kings and home rooks have left their starting squares. Flags never go back to False."""

    white_king_moved: bool = False
    black_king_moved: bool = False
    white_rook_a_moved: bool = False
    white_rook_h_moved: bool = False
    black_rook_a_moved: bool = False
    black_rook_h_moved: bool = False

    @staticmethod
    def _rook_flag(color: Color, rook_col: int) -> str:
        side = "a" if rook_col == 0 else "h"
        return f"{color.value}_rook_{side}_moved"

    def king_moved(self, color: Color) -> bool:
        return getattr(self, f"{color.value}_king_moved")

    def rook_moved(self, color: Color, rook_col: int) -> bool:
        return getattr(self, self._rook_flag(color, rook_col))

    def mark_king_moved(self, color: Color) -> None:
        setattr(self, f"{color.value}_king_moved", True)

    def mark_rook_moved(self, color: Color, rook_col: int) -> None:
        setattr(self, self._rook_flag(color, rook_col), True)


@dataclass(frozen=True)
class LastMove:
    piece_kind: Kind
    piece_color: Color
    from_row: int
    from_col: int
    to_row: int
    to_col: int

    @property
    def is_pawn_double_step(self) -> bool:
        return self.piece_kind is Kind.PAWN and abs(self.to_row - self.from_row) == 2


def _sign(n: int) -> int:
    return (n > 0) - (n < 0)


class ChessGame:
    """
    Two-player rules engine with a capture-the-king win condition.

    There is no check detection: a move that leaves the mover's own king
    en prise is legal, and the game ends only when a king is taken.
    """

    def __init__(self, board: Board | None = None, turn: Color = Color.WHITE) -> None:
        self._start(board.copy() if board is not None else Board.standard(), turn)

    def _start(self, board: Board, turn: Color) -> None:
        self._board = board
        self._turn = turn
        self._winner: Color | None = None
        self._pending_promotion: Square | None = None
        self._castling = CastlingRights()
        self._last_move: LastMove | None = None
        self._selected: Square | None = None

    def reset(self) -> None:
        """Reset the game to the initial position."""
        self._start(Board.standard(), Color.WHITE)
        _log.info("Game reset to the starting position")

    # ---- Observers ----

    @property
    def board(self) -> Board:
        return self._board.copy()

    @property
    def turn(self) -> Color:
        return self._turn

    @property
    def winner(self) -> Color | None:
        return self._winner

    @property
    def pending_promotion(self) -> Square | None:
        return self._pending_promotion

    @property
    def selected(self) -> Square | None:
        return self._selected

    @property
    def castling_rights(self) -> CastlingRights:
        return replace(self._castling)

    @property
    def last_move(self) -> LastMove | None:
        return self._last_move

    @property
    def is_over(self) -> bool:
        return self._winner is not None

    # ---- Legality ----

    def is_valid_move(self, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
        """
        Return True if the side to move may play from -> to.

        Only piece movement is checked; king safety is not. Nothing is
        legal once the game is won or while a promotion is pending.
        """
        if self._winner is not None or self._pending_promotion is not None:
            return False
        if not (on_board(from_row, from_col) and on_board(to_row, to_col)):
            return False

        piece = self._board.piece_at(from_row, from_col)
        if piece is None or piece.color is not self._turn:
            return False
        target = self._board.piece_at(to_row, to_col)
        if target is not None and target.color is piece.color:
            return False

        row_diff = abs(to_row - from_row)
        col_diff = abs(to_col - from_col)
        straight = row_diff == 0 or col_diff == 0
        diagonal = row_diff == col_diff

        if piece.kind is Kind.PAWN:
            return self._pawn_move_ok(piece.color, from_row, from_col, to_row, to_col)
        if piece.kind is Kind.KNIGHT:
            return (row_diff, col_diff) in ((2, 1), (1, 2))
        if piece.kind is Kind.BISHOP:
            return diagonal and self._path_clear(from_row, from_col, to_row, to_col)
        if piece.kind is Kind.ROOK:
            return straight and self._path_clear(from_row, from_col, to_row, to_col)
        if piece.kind is Kind.QUEEN:
            return (straight or diagonal) and self._path_clear(from_row, from_col, to_row, to_col)
        if piece.kind is Kind.KING:
            if row_diff <= 1 and col_diff <= 1:
                return True
            return row_diff == 0 and col_diff == 2 and self._castle_ok(piece.color, from_row, from_col, to_col)
        raise ValueError(f"Unhandled piece kind: {piece.kind!r}")

    def _path_clear(self, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
        step_row = _sign(to_row - from_row)
        step_col = _sign(to_col - from_col)
        row, col = from_row + step_row, from_col + step_col
        while (row, col) != (to_row, to_col):
            if not self._board.is_empty(row, col):
                return False
            row += step_row
            col += step_col
        return True

    def _pawn_move_ok(self, color: Color, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
        step = color.direction
        forward = to_row - from_row
        target_empty = self._board.is_empty(to_row, to_col)

        if from_col == to_col:
            if forward == step:
                return target_empty
            if forward == 2 * step and from_row == PAWN_HOME_ROW[color]:
                return self._board.is_empty(from_row + step, from_col) and target_empty
            return False

        if abs(to_col - from_col) == 1 and forward == step:
            if not target_empty:
                return True
            return self._is_en_passant(color, from_row, to_col)
        return False

    def _is_en_passant(self, color: Color, from_row: int, to_col: int) -> bool:
        last = self._last_move
        return (
            from_row == EN_PASSANT_ROW[color]
            and last is not None
            and last.is_pawn_double_step
            and last.piece_color is color.opponent()
            and last.to_col == to_col
            and last.to_row == from_row
        )

    def _castle_ok(self, color: Color, from_row: int, from_col: int, to_col: int) -> bool:
        if (from_row, from_col) != KING_HOME[color]:
            return False
        rook_col = SIZE - 1 if to_col > from_col else 0
        if self._castling.king_moved(color) or self._castling.rook_moved(color, rook_col):
            return False
        if self._board.piece_at(from_row, rook_col) != Piece(Kind.ROOK, color):
            return False
        # Every square between king and rook, which covers the king's path and landing square
        return self._path_clear(from_row, from_col, from_row, rook_col)

    def valid_destinations(self, row: int, col: int) -> list[Square]:
        """Squares the piece on (row, col) may move to, for highlighting."""
        if not on_board(row, col) or self._board.is_empty(row, col):
            return []
        return [
            (r, c)
            for r in range(SIZE)
            for c in range(SIZE)
            if self.is_valid_move(row, col, r, c)
        ]

    # ---- Commands ----

    def apply_move(self, from_row: int, from_col: int, to_row: int, to_col: int) -> None:
        """
        Play a move that is_valid_move has already accepted.

        A pawn reaching the last rank leaves both squares empty and suspends
        the game until resolve_promotion() is called; turn and winner are
        left alone until then.
        """
        board = self._board
        piece = board.piece_at(from_row, from_col)
        col_diff = abs(to_col - from_col)

        if piece.kind is Kind.KING and col_diff == 2:
            rook_col = SIZE - 1 if to_col > from_col else 0
            board.move(from_row, rook_col, from_row, (from_col + to_col) // 2)
            self._castling.mark_rook_moved(piece.color, rook_col)
            _log.debug("%s castles with the rook on %s", piece.color.value, square_name(from_row, rook_col))

        if (
            piece.kind is Kind.PAWN
            and col_diff == 1
            and board.is_empty(to_row, to_col)
            and self._is_en_passant(piece.color, from_row, to_col)
        ):
            board.clear(from_row, to_col)
            _log.debug("En passant capture on %s", square_name(from_row, to_col))

        self._note_capture(to_row, to_col)
        self._last_move = LastMove(piece.kind, piece.color, from_row, from_col, to_row, to_col)

        if piece.kind is Kind.PAWN and to_row == PROMOTION_ROW[piece.color]:
            board.clear(from_row, from_col)
            board.clear(to_row, to_col)
            self._pending_promotion = (to_row, to_col)
            _log.info("%s pawn reached %s, waiting for promotion choice", piece.color.value, square_name(to_row, to_col))
            return

        board.move(from_row, from_col, to_row, to_col)
        self._turn = self._turn.opponent()
        self._note_departure(piece, from_row, from_col)
        _log.info(
            "%s %s %s-%s",
            piece.color.value,
            piece.kind.value,
            square_name(from_row, from_col),
            square_name(to_row, to_col),
        )
        self._update_winner()

    def make_move(self, from_row: int, from_col: int, to_row: int, to_col: int) -> bool:
        """
        Try to play a move.
        Returns True if it was legal and applied, False otherwise.
        """
        if not self.is_valid_move(from_row, from_col, to_row, to_col):
            _log.debug("Rejected move (%d,%d)->(%d,%d)", from_row, from_col, to_row, to_col)
            return False
        self.apply_move(from_row, from_col, to_row, to_col)
        return True

    def resolve_promotion(self, kind: Kind) -> None:
        """Replace the pawn waiting on the last rank with a piece of `kind`."""
        if self._pending_promotion is None:
            raise InvalidPromotion("No promotion is pending", kind)
        if kind not in PROMOTION_KINDS:
            raise InvalidPromotion("A pawn cannot promote to", kind)

        row, col = self._pending_promotion
        self._board.place(row, col, Piece(kind, self._turn))
        self._pending_promotion = None
        self._last_move = None
        _log.info("%s pawn promoted to %s on %s", self._turn.value, kind.value, square_name(row, col))
        self._turn = self._turn.opponent()
        self._update_winner()

    def choose_promotion(self, choice) -> None:
        """Promotion entry point for callers holding a name or letter ('queen', 'q')."""
        if isinstance(choice, Kind):
            kind = choice
        else:
            kind = _PROMOTION_NAMES.get(str(choice).strip().lower())
            if kind is None:
                raise InvalidPromotion("Unknown piece", choice)
        self.resolve_promotion(kind)

    def select_square(self, row: int, col: int) -> bool:
        """
        Click-style input: the first call picks a piece of the side to move,
        the second is the destination. Returns True if a move was played.
        """
        if self._winner is not None or self._pending_promotion is not None:
            return False
        if not on_board(row, col):
            return False

        if self._selected is None:
            piece = self._board.piece_at(row, col)
            if piece is not None and piece.color is self._turn:
                self._selected = (row, col)
            return False

        from_row, from_col = self._selected
        self._selected = None
        return self.make_move(from_row, from_col, row, col)

    def _note_capture(self, row: int, col: int) -> None:
        target = self._board.piece_at(row, col)
        home_color = ROOK_HOMES.get((row, col))
        if home_color is not None and target == Piece(Kind.ROOK, home_color):
            self._castling.mark_rook_moved(home_color, col)

    def _note_departure(self, piece: Piece, row: int, col: int) -> None:
        if piece.kind is Kind.KING:
            self._castling.mark_king_moved(piece.color)
        elif piece.kind is Kind.ROOK and ROOK_HOMES.get((row, col)) is piece.color:
            self._castling.mark_rook_moved(piece.color, col)

    def _update_winner(self) -> None:
        if not self._board.has_king(Color.WHITE):
            self._winner = Color.BLACK
        elif not self._board.has_king(Color.BLACK):
            self._winner = Color.WHITE
        if self._winner is not None:
            _log.info("%s king captured, %s wins", self._winner.opponent().value, self._winner.value)

    def state_payload(self) -> dict:
        """Return the current game state as a JSON-friendly dict."""
        pending = None
        if self._pending_promotion is not None:
            row, col = self._pending_promotion
            pending = {"row": row, "col": col, "square": square_name(row, col)}

        selected = None
        if self._selected is not None:
            selected = {"row": self._selected[0], "col": self._selected[1]}

        last_move = None
        if self._last_move is not None:
            last = self._last_move
            last_move = {
                "from": square_name(last.from_row, last.from_col),
                "to": square_name(last.to_row, last.to_col),
            }

        return {
            "type": "state",
            "fen": self._board.to_fen(),
            "board": self._board.codes(),
            "turn": self._turn.value,
            "winner": self._winner.value if self._winner else None,
            "pendingPromotion": pending,
            "selected": selected,
            "lastMove": last_move,
            "castling": asdict(self._castling),
            "gameOver": self.is_over,
        }
