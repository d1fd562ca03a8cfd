import unittest

import chess

from coach_challenge.position import IllegalMove, InvalidPosition, Position

LEVEL0_FEN = "3qk3/ppp5/8/8/8/8/PPP5/3QK3 w - - 0 1"


class PositionAdapterTests(unittest.TestCase):
    def test_from_fen_rejects_malformed_and_invalid_boards(self):
        with self.assertRaises(InvalidPosition):
            Position.from_fen("not a fen")
        # no black king
        with self.assertRaises(InvalidPosition):
            Position.from_fen("8/8/8/8/8/8/8/4K3 w - - 0 1")

    def test_resolve_returns_move_with_san_and_capture(self):
        pos = Position.from_fen("4k3/8/8/3p4/4P3/8/8/4K3 w - - 0 1")
        move = pos.resolve("e4", "d5")
        self.assertEqual(move.uci, "e4d5")
        self.assertEqual(move.san, "exd5")
        self.assertEqual(move.piece, chess.PAWN)
        self.assertEqual(move.captured, chess.PAWN)
        self.assertTrue(move.is_capture)

    def test_resolve_rejects_illegal_and_unknown_squares(self):
        pos = Position.from_fen(LEVEL0_FEN)
        with self.assertRaises(IllegalMove):
            pos.resolve("d1", "h8")
        with self.assertRaises(IllegalMove):
            pos.resolve("z9", "d2")
        with self.assertRaises(IllegalMove):
            pos.resolve("d8", "d7")  # black queen, white to move

    def test_apply_move_returns_new_position_and_leaves_original(self):
        pos = Position.from_fen(LEVEL0_FEN)
        after = pos.apply_move(pos.resolve("d1", "d2"))
        self.assertEqual(pos.fen(), LEVEL0_FEN)
        self.assertEqual(after.turn, chess.BLACK)
        self.assertIsNotNone(after.piece_at("d2"))

    def test_pawn_promotes_to_queen_by_default(self):
        pos = Position.from_fen("4k3/P7/8/8/8/8/8/4K3 w - - 0 1")
        self.assertEqual(pos.resolve("a7", "a8").promotion, chess.QUEEN)
        self.assertEqual(pos.resolve("a7", "a8", promotion="n").promotion, chess.KNIGHT)

    def test_promotion_piece_ignored_for_ordinary_moves(self):
        pos = Position.from_fen(LEVEL0_FEN)
        move = pos.resolve("a2", "a3", promotion="q")
        self.assertEqual(move.uci, "a2a3")
        self.assertIsNone(move.promotion)
        self.assertIsNone(pos.resolve("d1", "d2", promotion="q").promotion)

    def test_legal_moves_filtered_by_square(self):
        pos = Position.from_fen(LEVEL0_FEN)
        pawn_moves = {m.uci for m in pos.legal_moves("a2")}
        self.assertEqual(pawn_moves, {"a2a3", "a2a4"})
        self.assertEqual(pos.legal_moves("a7"), [])  # not black's turn

    def test_clone_is_independent(self):
        pos = Position.from_fen(LEVEL0_FEN)
        clone = pos.clone()
        clone.apply_move(clone.resolve("a2", "a3"))
        self.assertEqual(clone.fen(), pos.fen())
        self.assertIsNot(clone.board, pos.board)


class TurnOverrideTests(unittest.TestCase):
    def test_with_turn_lets_the_waiting_side_generate_moves(self):
        pos = Position.from_fen(LEVEL0_FEN)
        black_view = pos.with_turn(chess.BLACK)
        self.assertEqual(black_view.turn, chess.BLACK)
        self.assertIn("a7a6", {m.uci for m in black_view.legal_moves("a7")})
        # the original still has white to move
        self.assertEqual(pos.turn, chess.WHITE)

    def test_with_turn_same_color_keeps_position(self):
        pos = Position.from_fen(LEVEL0_FEN)
        self.assertEqual(pos.with_turn(chess.WHITE).fen(), pos.fen())

    def test_with_turn_drops_en_passant(self):
        pos = Position.from_fen("4k3/8/8/3pP3/8/8/8/4K3 w - d6 0 2")
        self.assertIn("e5d6", {m.uci for m in pos.legal_moves("e5")})
        flipped = pos.with_turn(chess.BLACK).with_turn(chess.WHITE)
        self.assertNotIn("e5d6", {m.uci for m in flipped.legal_moves("e5")})

    def test_moves_to_lists_only_moves_landing_on_square(self):
        pos = Position.from_fen(LEVEL0_FEN)
        landing = pos.with_turn(chess.BLACK).moves_to("d1")
        self.assertEqual([m.uci for m in landing], ["d8d1"])
        self.assertEqual(landing[0].captured, chess.QUEEN)

    def test_with_piece_places_and_removes(self):
        pos = Position.from_fen(LEVEL0_FEN)
        placed = pos.with_piece("e4", chess.Piece(chess.KNIGHT, chess.BLACK))
        self.assertEqual(placed.piece_at("e4"), chess.Piece(chess.KNIGHT, chess.BLACK))
        self.assertIsNone(pos.piece_at("e4"))
        self.assertIsNone(placed.with_piece("e4", None).piece_at("e4"))


if __name__ == "__main__":
    unittest.main()
