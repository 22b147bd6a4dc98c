"""
docflow/rendering/tests/test_render_pipeline.py

Strategy ordering, fallthrough, timeout and pending degradation.
"""

from __future__ import annotations

import os
import stat
import sys
import tempfile
import threading
import unittest
from io import BytesIO
from pathlib import Path
from typing import List, Optional
from unittest import mock

import requests
from docx import Document

from docflow.core.config.config_service import RenderConfig
from docflow.exceptions.errors import DocumentStructureError
from docflow.rendering.logic.render_pipeline import RenderPipeline
from docflow.rendering.models.render_outcome import RenderStatus
from docflow.rendering.strategies.base import ConversionStrategy
from docflow.rendering.strategies.local_converter import LocalConverterStrategy, find_libreoffice
from docflow.rendering.strategies.remote_converter import DOCX_CONTENT_TYPE, RemoteConversionStrategy


def _docx() -> bytes:
    doc = Document()
    doc.add_paragraph("hello")
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


class FakeStrategy(ConversionStrategy):
    def __init__(self, name: str, result: Optional[bytes] = None, *, available: bool = True,
                 error: Optional[Exception] = None, calls: Optional[List[str]] = None) -> None:
        self.name = name
        self._result = result
        self._available = available
        self._error = error
        self.calls = calls if calls is not None else []

    def is_available(self) -> bool:
        return self._available

    def convert(self, docx_bytes: bytes) -> Optional[bytes]:
        self.calls.append(self.name)
        if self._error:
            raise self._error
        return self._result


class TestRenderPipeline(unittest.TestCase):
    def setUp(self) -> None:
        self.docx = _docx()

    def test_first_successful_strategy_wins(self) -> None:
        calls: List[str] = []
        pipeline = RenderPipeline([
            FakeStrategy("local", None, calls=calls),
            FakeStrategy("remote", b"%PDF-remote", calls=calls),
            FakeStrategy("never", b"%PDF-never", calls=calls),
        ])
        outcome = pipeline.render(self.docx)
        self.assertEqual(outcome.status, RenderStatus.COMPLETED)
        self.assertEqual(outcome.pdf_bytes, b"%PDF-remote")
        self.assertEqual(outcome.strategy, "remote")
        self.assertEqual(calls, ["local", "remote"])

    def test_strategy_exception_falls_through(self) -> None:
        pipeline = RenderPipeline([
            FakeStrategy("local", error=RuntimeError("boom")),
            FakeStrategy("remote", b"%PDF"),
        ])
        self.assertEqual(pipeline.render(self.docx).strategy, "remote")

    def test_unavailable_strategies_are_skipped(self) -> None:
        calls: List[str] = []
        pipeline = RenderPipeline([FakeStrategy("local", b"%PDF", available=False, calls=calls)])
        outcome = pipeline.render(self.docx)
        self.assertTrue(outcome.is_pending)
        self.assertEqual(calls, [])
        self.assertEqual(outcome.attempted, [])

    def test_all_failing_is_pending_not_error(self) -> None:
        pipeline = RenderPipeline([FakeStrategy("local"), FakeStrategy("remote")])
        outcome = pipeline.render(self.docx)
        self.assertEqual(outcome.status, RenderStatus.PENDING)
        self.assertIsNone(outcome.pdf_bytes)
        self.assertEqual(outcome.attempted, ["local", "remote"])

    def test_timeout_is_pending(self) -> None:
        release = threading.Event()

        class Slow(ConversionStrategy):
            name = "slow"

            def convert(self, docx_bytes: bytes) -> Optional[bytes]:
                release.wait(5)
                return b"%PDF-late"

        try:
            outcome = RenderPipeline([Slow()], timeout=0.1).render(self.docx)
        finally:
            release.set()
        self.assertTrue(outcome.is_pending)
        self.assertTrue(outcome.timed_out)

    def test_unreadable_input_raises(self) -> None:
        pipeline = RenderPipeline([FakeStrategy("local", b"%PDF")])
        for payload in (b"", b"no zip here"):
            with self.assertRaises(DocumentStructureError):
                pipeline.render(payload)

    def test_from_config_without_endpoint_has_no_remote(self) -> None:
        pipeline = RenderPipeline.from_config(RenderConfig(gotenberg_url=""))
        self.assertEqual([s.name for s in pipeline.strategies], ["libreoffice"])
        pipeline = RenderPipeline.from_config(RenderConfig(gotenberg_url="http://g:3000", enable_local=False))
        self.assertEqual([s.name for s in pipeline.strategies], ["remote"])


class TestRemoteConversion(unittest.TestCase):
    def _session(self, *, status: int = 200, content: bytes = b"%PDF-1.7", error: Optional[Exception] = None):
        session = mock.Mock(spec=requests.Session)
        if error:
            session.post.side_effect = error
        else:
            session.post.return_value = mock.Mock(status_code=status, content=content, text="")
        return session

    def test_posts_multipart_with_timeouts(self) -> None:
        session = self._session()
        strategy = RemoteConversionStrategy("http://gotenberg:3000/", connect_timeout=30, read_timeout=60,
                                            session=session)
        self.assertEqual(strategy.convert(b"DOCX"), b"%PDF-1.7")
        args, kwargs = session.post.call_args
        self.assertEqual(args[0], "http://gotenberg:3000/forms/libreoffice/convert")
        self.assertEqual(kwargs["files"], {"files": ("document.docx", b"DOCX", DOCX_CONTENT_TYPE)})
        self.assertEqual(kwargs["timeout"], (30, 60))

    def test_non_200_is_failure(self) -> None:
        strategy = RemoteConversionStrategy("http://g", session=self._session(status=503))
        self.assertIsNone(strategy.convert(b"DOCX"))

    def test_network_error_is_failure(self) -> None:
        err = requests.exceptions.ConnectTimeout("slow")
        strategy = RemoteConversionStrategy("http://g", session=self._session(error=err))
        self.assertIsNone(strategy.convert(b"DOCX"))

    def test_unconfigured_is_unavailable(self) -> None:
        self.assertFalse(RemoteConversionStrategy("").is_available())


@unittest.skipIf(sys.platform.startswith("win"), "uses a POSIX shell script as fake soffice")
class TestLocalConverter(unittest.TestCase):
    FAKE_SOFFICE = (
        "#!/bin/sh\n"
        "while [ \"$#\" -gt 0 ]; do\n"
        "  if [ \"$1\" = \"--outdir\" ]; then shift; OUT=\"$1\"; fi\n"
        "  shift\n"
        "done\n"
        "printf '%%PDF-1.4 fake' > \"$OUT/document.pdf\"\n"
    )

    def setUp(self) -> None:
        find_libreoffice.cache_clear()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        find_libreoffice.cache_clear()
        self._tmp.cleanup()

    def _script(self, body: str) -> str:
        path = self.tmp / "soffice"
        path.write_text(body, encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
        return str(path)

    def test_explicit_binary_is_used_and_memoized(self) -> None:
        binary = self._script(self.FAKE_SOFFICE)
        self.assertEqual(find_libreoffice(binary), binary)
        os.remove(binary)
        self.assertEqual(find_libreoffice(binary), binary)

    def test_convert_reads_generated_pdf(self) -> None:
        strategy = LocalConverterStrategy(binary=self._script(self.FAKE_SOFFICE), timeout=10)
        self.assertEqual(strategy.convert(b"DOCX"), b"%PDF-1.4 fake")

    def test_failing_process_is_strategy_failure(self) -> None:
        strategy = LocalConverterStrategy(binary=self._script("#!/bin/sh\nexit 3\n"), timeout=10)
        self.assertIsNone(strategy.convert(b"DOCX"))

    def test_missing_binary(self) -> None:
        strategy = LocalConverterStrategy(binary=str(self.tmp / "nope"))
        with mock.patch("docflow.rendering.strategies.local_converter.SOFFICE_CANDIDATES", ()), \
                mock.patch("shutil.which", return_value=None):
            self.assertFalse(strategy.is_available())
            self.assertIsNone(strategy.convert(b"DOCX"))


if __name__ == "__main__":
    unittest.main()
