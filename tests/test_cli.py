import io
import os
import tempfile
import unittest
from contextlib import redirect_stdout

from coach_challenge.challenges import LEVEL_0_CHALLENGE
from coach_challenge.cli import _split_request, main, play
from coach_challenge.engine import ChallengeEngine


class SplitRequestTests(unittest.TestCase):
    def setUp(self):
        self.engine = ChallengeEngine(LEVEL_0_CHALLENGE, seed=1)

    def test_reads_uci_and_san(self):
        self.assertEqual(_split_request("d1d5", self.engine), ("d1", "d5", None))
        self.assertEqual(_split_request(" Qd5 ", self.engine), ("d1", "d5", None))
        self.assertEqual(_split_request("a7a8q", self.engine), ("a7", "a8", "q"))

    def test_unreadable_input(self):
        self.assertIsNone(_split_request("", self.engine))
        self.assertIsNone(_split_request("castle please", self.engine))


class PlayTests(unittest.TestCase):
    def test_play_reports_bad_input_and_stops_when_moves_run_out(self):
        engine = ChallengeEngine(LEVEL_0_CHALLENGE, seed=1)
        moves = iter(["zz", "d1h8", "a2a3"])
        lines = []
        play(engine, lambda: next(moves, None), out=lines.append)
        text = "\n".join(lines)
        self.assertIn("Could not read move 'zz'", text)
        self.assertIn("Illegal move. Please try again.", text)
        self.assertIn("You played a3", text)
        self.assertIn("Coach played", text)
        self.assertEqual(engine.get_state().moves_played, 1)


class MainTests(unittest.TestCase):
    def test_scripted_queen_blunder_exits_nonzero(self):
        fd, pgn_path = tempfile.mkstemp(suffix=".pgn")
        os.close(fd)
        self.addCleanup(os.remove, pgn_path)
        buf = io.StringIO()
        with redirect_stdout(buf):
            code = main(["--moves", "d1d5", "--seed", "1", "--pgn-out", pgn_path])
        self.assertEqual(code, 1)
        out = buf.getvalue()
        self.assertIn("You left your Queen undefended", out)
        self.assertIn("'fail_reason': 'queenBlunder'", out)
        with open(pgn_path, encoding="utf-8") as f:
            self.assertIn("Termination: queenBlunder", f.read())

    def test_unknown_challenge_is_a_usage_error(self):
        with self.assertRaises(SystemExit):
            with redirect_stdout(io.StringIO()):
                main(["--challenge", "level9_challenge", "--moves", ""])


if __name__ == "__main__":
    unittest.main()
