import unittest

import chess

from coach_challenge.evaluation import (
    PIECE_VALUES,
    best_exposed_score,
    exposed_score,
    is_hanging,
    is_net_blunder,
    is_queen_blunder,
    is_square_attacked,
    is_square_defended,
    material_for,
    material_score,
)
from coach_challenge.position import Position

LEVEL0_FEN = "3qk3/ppp5/8/8/8/8/PPP5/3QK3 w - - 0 1"
LEVEL1_FEN = "1nbqk3/ppp5/8/8/8/8/PPP5/1NBQK3 w - - 0 1"


class MaterialTests(unittest.TestCase):
    def test_piece_values_are_standard(self):
        self.assertEqual(
            [PIECE_VALUES[p] for p in (chess.PAWN, chess.KNIGHT, chess.BISHOP, chess.ROOK, chess.QUEEN, chess.KING)],
            [1, 3, 3, 5, 9, 0],
        )

    def test_material_for_sums_piece_values(self):
        pos = Position.from_fen(LEVEL1_FEN)
        self.assertEqual(material_for(pos, chess.WHITE), 9 + 3 + 3 + 3)
        self.assertEqual(material_for(pos, chess.BLACK), 18)

    def test_material_score_is_antisymmetric(self):
        fens = [
            LEVEL0_FEN,
            LEVEL1_FEN,
            chess.STARTING_FEN,
            "4k3/8/8/4p3/8/2P5/8/3QK3 w - - 0 1",
            "r3k3/8/8/8/8/8/8/4K2N b - - 0 1",
        ]
        for fen in fens:
            pos = Position.from_fen(fen)
            with self.subTest(fen=fen):
                self.assertEqual(material_score(pos, chess.WHITE), -material_score(pos, chess.BLACK))

    def test_material_score_sign(self):
        pos = Position.from_fen("r3k3/8/8/8/8/8/8/4K2N b - - 0 1")
        self.assertEqual(material_score(pos, chess.BLACK), 2)


class DefenseProbeTests(unittest.TestCase):
    def test_defended_regardless_of_side_to_move(self):
        # white queen on d3 is covered by the c2 pawn whoever is to move
        for turn in ("w", "b"):
            pos = Position.from_fen(f"3qk3/ppp5/8/8/8/3Q4/PPP5/4K3 {turn} - - 0 1")
            with self.subTest(turn=turn):
                self.assertTrue(is_square_defended(pos, "d3", chess.WHITE))
                self.assertTrue(is_square_attacked(pos, "d3", chess.BLACK))

    def test_pawn_push_is_not_a_defense(self):
        # a2 pawn can step to a3 but could never recapture there
        pos = Position.from_fen("4k3/8/8/8/8/8/P7/4K3 w - - 0 1")
        self.assertFalse(is_square_defended(pos, "a3", chess.WHITE))
        self.assertTrue(is_square_defended(pos, "b3", chess.WHITE))

    def test_pinned_piece_does_not_defend(self):
        # the e2 knight is pinned to the king by the e8 rook
        pos = Position.from_fen("k3r3/8/8/8/8/3p4/4N3/4K3 b - - 0 1")
        self.assertFalse(is_square_defended(pos, "c3", chess.WHITE))
        unpinned = Position.from_fen("k7/8/8/8/8/3p4/4N3/4K3 b - - 0 1")
        self.assertTrue(is_square_defended(unpinned, "c3", chess.WHITE))

    def test_hanging_needs_attack_and_no_defense(self):
        pos = Position.from_fen("3qk3/ppp5/8/3Q4/8/8/PPP5/4K3 b - - 0 1")
        self.assertTrue(is_hanging(pos, "d5", chess.WHITE))
        guarded = Position.from_fen("3qk3/ppp5/8/3Q4/2P5/8/PP6/4K3 b - - 0 1")
        self.assertFalse(is_hanging(guarded, "d5", chess.WHITE))


class BlunderRuleTests(unittest.TestCase):
    def _play(self, fen, src, dst):
        before = Position.from_fen(fen)
        move = before.resolve(src, dst)
        return before, before.apply_move(move), move

    def test_queen_to_undefended_attacked_square_is_queen_blunder(self):
        before, after, move = self._play(LEVEL0_FEN, "d1", "d5")
        self.assertTrue(is_queen_blunder(before, after, chess.WHITE, move))

    def test_queen_to_defended_square_is_not_queen_blunder(self):
        before, after, move = self._play("4k3/8/8/4p3/8/2P5/8/3QK3 w - - 0 1", "d1", "d4")
        self.assertFalse(is_queen_blunder(before, after, chess.WHITE, move))

    def test_queen_to_unattacked_square_is_not_queen_blunder(self):
        before, after, move = self._play(LEVEL0_FEN, "d1", "g4")
        self.assertFalse(is_queen_blunder(before, after, chess.WHITE, move))

    def test_queen_trade_is_not_queen_blunder(self):
        before, after, move = self._play(LEVEL0_FEN, "d1", "d8")
        self.assertTrue(after.is_check())
        self.assertFalse(is_queen_blunder(before, after, chess.WHITE, move))

    def test_non_queen_move_is_not_queen_blunder(self):
        before, after, move = self._play(LEVEL0_FEN, "a2", "a3")
        self.assertFalse(is_queen_blunder(before, after, chess.WHITE, move))

    def test_net_blunder_threshold(self):
        self.assertTrue(is_net_blunder(0, -3))
        self.assertTrue(is_net_blunder(2, -7))
        self.assertFalse(is_net_blunder(0, -2))
        self.assertFalse(is_net_blunder(-1, 1))

    def test_exposed_score_charges_hung_queen(self):
        _, after, _ = self._play(LEVEL0_FEN, "d1", "d5")
        self.assertEqual(material_score(after, chess.WHITE), 0)
        self.assertEqual(exposed_score(after, chess.WHITE), -9)

    def test_exposed_score_discounts_defended_targets(self):
        # exd4 wins the queen but the c3 pawn takes back: net 8
        _, after, _ = self._play("4k3/8/8/4p3/8/2P5/8/3QK3 w - - 0 1", "d1", "d4")
        self.assertEqual(material_score(after, chess.WHITE), 9)
        self.assertEqual(exposed_score(after, chess.WHITE), 1)

    def test_exposed_score_unchanged_when_nothing_en_prise(self):
        _, after, _ = self._play(LEVEL0_FEN, "a2", "a3")
        self.assertEqual(exposed_score(after, chess.WHITE), 0)

    def test_best_exposed_score_after_fork(self):
        # every escape from Nc2+ leaves the a1 queen en prise
        forked = Position.from_fen("4k3/8/8/8/8/7P/2n5/Q3K3 w - - 0 2")
        self.assertEqual(material_score(forked, chess.WHITE), 7)
        self.assertEqual(best_exposed_score(forked, chess.WHITE), -2)
        self.assertEqual(best_exposed_score(Position.from_fen(LEVEL0_FEN), chess.WHITE), 0)


if __name__ == "__main__":
    unittest.main()
