from __future__ import annotations

import io
import json
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch

from contracts.diagnostics import CONVERSION_BACKEND_NOT_INSTALLED, conversion_error
from extract import ExtractEngineName, ExtractResult
from viewer.cli import EXIT_EXTRACT, EXIT_OK, EXIT_PARSE, EXIT_USAGE, build_config, build_arg_parser, main

_SAMPLE_LINES = [
    "Spatial Layout Sample",
    "Left column starts here.",
    "It continues down the",
    "page before the reader",
    "moves to the right",
    "column.",
    "Right column begins at",
    "the top of the second",
    "column and ends",
    "here.",
    "A footer spans both columns below the body.",
    "Second page",
    "A single column of text",
    "checks paging and plain",
    "reading order.",
]


def _run(argv: list[str]) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(argv)
    return code, out.getvalue(), err.getvalue()


class TestCliModes(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_text_mode_on_sample_follows_reading_order(self) -> None:
        code, out, _ = _run(["--mode", "text"])
        self.assertEqual(code, EXIT_OK)
        self.assertEqual([ln for ln in out.splitlines() if ln.strip()], _SAMPLE_LINES)

    def test_grid_mode_keeps_columns_side_by_side(self) -> None:
        code, out, _ = _run(["--mode", "grid", "--cols", "80", "--page", "1"])
        self.assertEqual(code, EXIT_OK)
        lines = out.splitlines()
        title_row = next(i for i, ln in enumerate(lines) if "Spatial" in ln)
        body_row = next(i for i, ln in enumerate(lines) if "Left" in ln)
        self.assertLess(title_row, body_row)
        self.assertIn("Right", lines[body_row])
        self.assertLess(lines[body_row].index("Left"), lines[body_row].index("Right"))
        self.assertTrue(all(len(ln) <= 80 for ln in lines))

    def test_grid_mode_honours_rows(self) -> None:
        code, out, _ = _run(["--mode", "grid", "--cols", "60", "--rows", "10", "--page", "2"])
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(len(out.splitlines()), 10)

    def test_xml_mode_prints_indented_description(self) -> None:
        code, out, _ = _run(["--mode", "xml"])
        self.assertEqual(code, EXIT_OK)
        self.assertIn('CONTENT="Spatial"', out)
        self.assertIn("\n  <Layout>", out)

    def test_debug_mode_lists_lines_with_roles(self) -> None:
        code, out, _ = _run(["--mode", "debug", "--page", "1"])
        self.assertEqual(code, EXIT_OK)
        self.assertIn("=== PAGE 001 ===", out)
        self.assertIn("full_width", out)
        self.assertIn("gutter x=", out)

    def test_json_mode_dumps_resolved_document(self) -> None:
        code, out, _ = _run(["--mode", "json"])
        self.assertEqual(code, EXIT_OK)
        payload = json.loads(out)
        self.assertTrue(payload["ok"])
        pages = payload["document"]["pages"]
        self.assertEqual(len(pages), 2)
        self.assertEqual(pages[0]["lines"][0]["text"], "Spatial Layout Sample")
        self.assertEqual(pages[0]["fragments"], [])

    def test_save_text_and_xml(self) -> None:
        text_file = self.tmp / "out" / "page.txt"
        xml_file = self.tmp / "out" / "page.xml"
        code, _, _ = _run(["--mode", "grid", "--cols", "80", "--save-text", str(text_file), "--save-xml", str(xml_file)])
        self.assertEqual(code, EXIT_OK)
        self.assertTrue(text_file.read_text(encoding="utf-8").startswith("Spatial Layout Sample\n"))
        self.assertIn("<alto", xml_file.read_text(encoding="utf-8"))

    def test_description_file_is_parsed_directly(self) -> None:
        src = self.tmp / "doc.xml"
        src.write_text(
            '<alto><Page WIDTH="100" HEIGHT="50"><String CONTENT="hi" HPOS="10" VPOS="10" WIDTH="10" HEIGHT="10"/></Page></alto>',
            encoding="utf-8",
        )
        with patch("viewer.session.run_extraction") as run:
            code, out, _ = _run(["--mode", "text", str(src)])
        run.assert_not_called()
        self.assertEqual((code, out), (EXIT_OK, "hi\n"))


class TestCliExitCodes(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_missing_input_is_usage_error(self) -> None:
        code, _, err = _run(["--mode", "grid", str(self.tmp / "missing.pdf")])
        self.assertEqual(code, EXIT_USAGE)
        self.assertIn("not found", err)

    def test_bad_arguments_exit_with_usage_code(self) -> None:
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as cm:
            main(["--mode", "bogus"])
        self.assertEqual(cm.exception.code, EXIT_USAGE)

        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as cm:
            main(["--mode", "grid", "--cols", "0"])
        self.assertEqual(cm.exception.code, EXIT_USAGE)

    def test_page_out_of_range(self) -> None:
        code, _, err = _run(["--mode", "text", "--page", "9"])
        self.assertEqual(code, EXIT_USAGE)
        self.assertIn("out of range", err)

    def test_extraction_failure(self) -> None:
        pdf = self.tmp / "doc.pdf"
        pdf.write_bytes(b"%PDF-FAKE%")
        failed = ExtractResult(
            ok=False,
            engine=ExtractEngineName.PDFALTO_CLI,
            description=None,
            errors=[conversion_error(CONVERSION_BACKEND_NOT_INSTALLED, "pdfalto binary not found on PATH")],
        )
        with patch("viewer.session.run_extraction", return_value=failed):
            code, out, err = _run(["--mode", "grid", str(pdf)])
        self.assertEqual(code, EXIT_EXTRACT)
        self.assertEqual(out, "")
        self.assertIn(CONVERSION_BACKEND_NOT_INSTALLED, err)

    def test_parse_failure(self) -> None:
        src = self.tmp / "bad.xml"
        src.write_text("<alto><Page>", encoding="utf-8")
        code, _, err = _run(["--mode", "text", str(src)])
        self.assertEqual(code, EXIT_PARSE)
        self.assertIn("PARSE_MALFORMED_STRUCTURE", err)

    def test_invalid_config_file(self) -> None:
        cfg = self.tmp / "cfg.json"
        cfg.write_text(json.dumps({"rendering": {}}), encoding="utf-8")
        code, _, err = _run(["--mode", "text", "--config", str(cfg)])
        self.assertEqual(code, EXIT_USAGE)
        self.assertIn("Unknown config sections", err)


class TestBuildConfig(unittest.TestCase):
    def test_flags_override_config_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg_file = Path(tmp) / "cfg.json"
            cfg_file.write_text(
                json.dumps(
                    {
                        "extract": {"engine": "pypdfium2", "timeout_s": 10},
                        "mapping": {"cell_aspect": 2.5},
                        "layout": {"column_gap_k": 3.0},
                    }
                ),
                encoding="utf-8",
            )
            args = build_arg_parser().parse_args(
                ["--config", str(cfg_file), "--timeout-s", "3", "--no-reading-order", "--first-page", "2"]
            )
            cfg = build_config(args)

        self.assertEqual(cfg.extract.engine, ExtractEngineName.PYPDFIUM2)
        self.assertEqual(cfg.extract.timeout_s, 3.0)
        self.assertFalse(cfg.extract.reading_order)
        self.assertEqual(cfg.extract.first_page, 2)
        self.assertEqual(cfg.mapping.cell_aspect, 2.5)
        self.assertEqual(cfg.layout.column_gap_k, 3.0)
        self.assertTrue(cfg.layout.detect_columns)

    def test_defaults(self) -> None:
        cfg = build_config(build_arg_parser().parse_args([]))
        self.assertEqual(cfg.extract.engine, ExtractEngineName.PDFALTO_CLI)
        self.assertTrue(cfg.extract.reading_order)
        self.assertEqual(cfg.mapping.cell_aspect, 2.0)


if __name__ == "__main__":
    unittest.main()
