from __future__ import annotations

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from tempfile import TemporaryDirectory

import matplotlib

import msa_viz
from msaview import service
from msaview.model import Alignment
from msaview.mpl_backend import configure_headless_matplotlib
from msaview.ordering import SeqOrdering
from msaview.render import plot_statistics, render_bytes
from msaview.service import (
    apply_action,
    compose_frame,
    frame_to_payload,
    get_session,
    prepare_session,
    resize_session,
    session_from_alignment,
    session_info,
)
from msaview.viewport import BottomPanePosition, UnsizedPaneError, ZoomBox, ZoomLevel
from webapp.app import app


FIXTURES = Path(__file__).resolve().parent / "fixtures"
CONS = FIXTURES / "test-cons.fas"
TEST2 = FIXTURES / "test2.fas"


class SessionTests(unittest.TestCase):
    def test_frame_of_fitting_alignment(self):
        session = prepare_session(input_path=CONS, height=8, width=6)
        frame = compose_frame(session)
        self.assertEqual(frame.title, "test-cons.fas - 6/6s x 4/4c")
        self.assertEqual(frame.label_numbers, ["1", "2", "3", "4", "5", "6"])
        self.assertEqual(frame.labels, ["s1", "s2", "s3", "s4", "s5", "s6"])
        self.assertEqual(frame.residue_lines[5], "ATF-")
        self.assertEqual(frame.consensus, "AQw-")
        self.assertEqual(frame.density, "███▄")
        self.assertEqual(frame.metric_bars[0], "██")
        self.assertEqual(frame.metric_label, "%id (cons) -")
        self.assertIsNone(frame.zoombox)

    def test_full_columns_draw_full_bars(self):
        alignment = Alignment(headers=("a", "b"), sequences=("AC", "AC"))
        frame = compose_frame(session_from_alignment(alignment, height=4, width=4))
        self.assertEqual(frame.density, "██")
        self.assertEqual(frame.conservation, "██")

    def test_ordering_by_metric_reorders_rows(self):
        session = prepare_session(input_path=CONS, height=8, width=6)
        apply_action(session, "cycle_ordering_criterion")
        frame = compose_frame(session)
        self.assertEqual(frame.seq_indices, [5, 2, 3, 4, 0, 1])
        self.assertEqual(frame.labels[0], "s6")
        self.assertEqual(frame.metric_label, "%id (cons) ↑")

        apply_action(session, "cycle_ordering_criterion")
        self.assertIs(session.ordering.criterion, SeqOrdering.METRIC_DECR)
        self.assertEqual(compose_frame(session).seq_indices[-1], 5)

    def test_zoomed_out_frame(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        apply_action(session, "cycle_zoom")
        frame = compose_frame(session)
        self.assertIs(frame.zoom_level, ZoomLevel.ZOOMED_OUT)
        self.assertEqual(frame.title, "test2.fas - 2/3s x 5/10c - fully zoomed out")
        self.assertEqual(frame.col_indices, [0, 2, 5, 7, 9])
        self.assertEqual(frame.residue_lines, ["TGGCA", "TAGCA"])
        self.assertEqual(frame.consensus, "TaGCA")
        self.assertEqual(frame.tick_marks, "    :")
        self.assertEqual(frame.zoombox, ZoomBox(top=0, bottom=1, left=0, right=3))

        payload = frame_to_payload(frame)
        self.assertEqual(payload["zoombox"]["shape"], "horizontal")
        self.assertEqual(payload["zoom_level"], "zoomed_out")

    def test_cycle_zoom_backwards(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        apply_action(session, "cycle_zoom_backwards")
        self.assertIs(session.viewport.zoom_level, ZoomLevel.ZOOMED_OUT_AR)

    def test_bottom_pane_position(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        apply_action(session, "cycle_bottom_pane_position")
        self.assertIs(compose_frame(session).bottom_pane_position, BottomPanePosition.SCREEN_BOTTOM)

    def test_unknown_action(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        with self.assertRaises(ValueError):
            apply_action(session, "teleport")

    def test_unsized_session(self):
        session = prepare_session(input_path=TEST2)
        self.assertIsNone(session_info(session)["pane"])
        with self.assertRaises(UnsizedPaneError):
            compose_frame(session)
        resize_session(session, "5", "12")
        self.assertEqual(compose_frame(session).residue_lines[1], "TTCCCGGCGA")

    def test_session_info(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        info = session_info(session)
        self.assertEqual(info["nb_sequences"], 3)
        self.assertEqual(info["nb_columns"], 10)
        self.assertEqual(info["macromolecule"], "nucleotide")
        self.assertEqual(info["pane"]["fit"], "too_tall_and_wide")

    def test_session_cache_is_bounded(self):
        alignment = Alignment(headers=("a",), sequences=("AC",))
        first = session_from_alignment(alignment)
        self.assertIs(get_session(first.token), first)
        for _ in range(service.MAX_SESSIONS):
            session_from_alignment(alignment)
        self.assertLessEqual(len(service.SESSION_CACHE), service.MAX_SESSIONS)
        with self.assertRaises(ValueError):
            get_session(first.token)


class RenderTests(unittest.TestCase):
    def test_backend_configuration_is_agg_and_idempotent(self):
        first = configure_headless_matplotlib()
        second = configure_headless_matplotlib()
        self.assertIn("agg", first.lower())
        self.assertEqual(first.lower(), second.lower())
        self.assertIn("agg", str(matplotlib.get_backend()).lower())

    def test_plot_statistics_writes_file(self):
        session = prepare_session(input_path=TEST2, height=4, width=7)
        with TemporaryDirectory() as tmp:
            output = Path(tmp) / "stats.png"
            plot_statistics(session, output)
            self.assertGreater(output.stat().st_size, 0)

    def test_render_bytes(self):
        session = prepare_session(input_path=CONS)
        self.assertTrue(render_bytes(session, "png").startswith(b"\x89PNG"))
        self.assertIn(b"<svg", render_bytes(session, "svg"))
        with self.assertRaises(ValueError):
            render_bytes(session, "gif")


class CliTests(unittest.TestCase):
    def test_frame_snapshot(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = msa_viz.main([str(CONS), "--height", "8", "--width", "6"])
        self.assertEqual(code, 0)
        text = out.getvalue()
        self.assertIn("test-cons.fas - 6/6s x 4/4c", text)
        self.assertIn("AQw-", text)
        self.assertIn("ATF-", text)

    def test_info_and_ordering(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = msa_viz.main([str(CONS), "--info", "--order", "desc", "--metric", "length"])
        self.assertEqual(code, 0)
        self.assertIn("type: protein", out.getvalue())
        self.assertIn("ordering: metric_decr (seq len)", out.getvalue())

    def test_zoomed_out_snapshot_and_plot(self):
        with TemporaryDirectory() as tmp:
            output = Path(tmp) / "stats.svg"
            out = io.StringIO()
            with redirect_stdout(out):
                code = msa_viz.main(
                    [str(TEST2), "--height", "4", "--width", "7", "--zoom", "out", "--plot", str(output)]
                )
            self.assertEqual(code, 0)
            self.assertTrue(output.exists())
        self.assertIn("zoombox: rows 0-1, columns 0-3 (horizontal)", out.getvalue())

    def test_missing_input_fails(self):
        err = io.StringIO()
        with redirect_stderr(err):
            code = msa_viz.main([str(FIXTURES / "absent.fas")])
        self.assertEqual(code, 1)
        self.assertIn("Error while loading alignment", err.getvalue())


class ApiTests(unittest.TestCase):
    def setUp(self):
        app.config["TESTING"] = True
        self.client = app.test_client()

    def _load(self, **extra):
        payload = {"input_path": str(TEST2), "height": 4, "width": 7}
        payload.update(extra)
        response = self.client.post("/api/load", json=payload)
        self.assertEqual(response.status_code, 200, response.get_json())
        return response.get_json()

    def test_load_action_resize_frame_info(self):
        loaded = self._load()
        token = loaded["token"]
        self.assertEqual(loaded["info"]["nb_sequences"], 3)
        self.assertEqual(loaded["frame"]["residue_lines"], ["TTGCC", "TTCCC"])

        response = self.client.post("/api/action", json={"token": token, "action": "scroll_screen_right"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["leftmost_col"], 5)

        response = self.client.post("/api/action", json={"token": token, "action": "cycle_zoom"})
        self.assertEqual(response.get_json()["zoom_level"], "zoomed_out")

        response = self.client.post("/api/resize", json={"token": token, "height": 6, "width": 14})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.get_json()["residue_lines"]), 3)

        response = self.client.post("/api/frame", json={"token": token})
        self.assertEqual(response.get_json()["title"], "test2.fas - 3/3s x 10/10c - fully zoomed out")

        response = self.client.post("/api/info", json={"token": token})
        self.assertEqual(response.get_json()["pane"]["fit"], "fits")

    def test_load_with_params(self):
        loaded = self._load(params={"weak_majority": 0.4})
        self.assertEqual(loaded["frame"]["consensus"], "TT.CC")

    def test_plot_export(self):
        token = self._load()["token"]
        response = self.client.post("/api/plot", json={"token": token, "format": "svg"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["Content-Type"], "image/svg+xml")
        self.assertIn(b"<svg", response.data)

        response = self.client.post("/api/plot", json={"token": token, "format": "png"})
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data.startswith(b"\x89PNG"))

    def test_errors_are_reported_as_json(self):
        response = self.client.post("/api/load", json={})
        self.assertEqual(response.status_code, 400)
        self.assertIn("input_path", response.get_json()["error"])

        response = self.client.post("/api/load", json={"input_path": str(FIXTURES / "absent.fas")})
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/frame", json={"token": "nope"})
        self.assertEqual(response.status_code, 400)

        token = self._load()["token"]
        response = self.client.post("/api/action", json={"token": token, "action": "teleport"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Unknown action", response.get_json()["error"])

        response = self.client.post("/api/resize", json={"token": token, "height": "tall", "width": 3})
        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
