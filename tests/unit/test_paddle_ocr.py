# ============================================================================
# tests/unit/test_paddle_ocr.py
# ============================================================================
"""
Tests for the PaddleOCR recognizer with a stand-in engine
"""

import time

import pytest

from conftest import make_png
from mediguide.config.ocr_config import OCRSettings
from mediguide.core.schemas import ZERO_POLYGON
from mediguide.ocr.paddle_ocr import PaddleOCRRecognizer, _to_polygon, build_ocr_result
from mediguide.utils.exceptions import OracleError, OracleTimeoutError

BOX = [[10, 10], [110, 10], [110, 40], [10, 40]]

PREDICTION = [{
    "rec_texts": ["Tab Amlodipine 5mg", "  ", "1-0-0 x 30 days"],
    "rec_scores": [0.9, 0.2, 0.7],
    "dt_polys": [BOX, BOX, BOX],
}]


class FakeEngine:
    """Mimics PaddleOCR.predict"""

    def __init__(self, result=PREDICTION, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.inputs = []

    def predict(self, input):
        self.inputs.append(input)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_recognizer(engine, lang="en", **settings):
    recognizer = PaddleOCRRecognizer(OCRSettings(**settings))
    recognizer._engines[lang] = engine
    return recognizer


class TestBuildOCRResult:
    """Conversion of predict() output"""

    def test_lines_and_tokens(self):
        """Test blank lines are skipped and words become tokens"""
        result = build_ocr_result(PREDICTION)

        assert result.text == "Tab Amlodipine 5mg\n1-0-0 x 30 days"
        assert [line.text for line in result.lines] == ["Tab Amlodipine 5mg", "1-0-0 x 30 days"]
        assert [t.text for t in result.tokens][:3] == ["Tab", "Amlodipine", "5mg"]
        assert len(result.tokens) == 7
        assert result.tokens[0].confidence == 0.9
        assert result.tokens[0].bbox[1] == (110.0, 10.0)

    def test_confidence_is_line_mean(self):
        """Test overall confidence averages kept lines"""
        assert build_ocr_result(PREDICTION).confidence == pytest.approx(0.8)

    def test_missing_scores_and_polys(self):
        """Test short score and polygon lists fall back"""
        result = build_ocr_result([{"rec_texts": ["Metformin"], "rec_scores": [], "dt_polys": []}])

        assert result.confidence == 1.0
        assert result.tokens[0].bbox == ZERO_POLYGON

    def test_empty(self):
        """Test no detections"""
        result = build_ocr_result(None, language="hi")

        assert result.text == ""
        assert result.confidence == 0.0
        assert result.tokens == []
        assert result.language == "hi"


class TestToPolygon:
    """Box normalisation"""

    def test_four_points(self):
        """Test quadrilaterals pass through as floats"""
        assert _to_polygon(BOX) == ((10.0, 10.0), (110.0, 10.0), (110.0, 40.0), (10.0, 40.0))

    def test_other_point_counts(self):
        """Test other shapes collapse to their extent"""
        poly = [[5, 20], [50, 0], [90, 20], [50, 60], [5, 40]]
        assert _to_polygon(poly) == ((5.0, 0.0), (90.0, 0.0), (90.0, 60.0), (5.0, 60.0))

    @pytest.mark.parametrize("poly", [None, [], ["ab"], [[1, "x"]]])
    def test_invalid(self, poly):
        """Test unusable boxes become the zero polygon"""
        assert _to_polygon(poly) == ZERO_POLYGON


class TestRecognizer:
    """PaddleOCRRecognizer with a stand-in engine"""

    def test_recognize_sync(self):
        """Test the engine receives a prepared BGR array"""
        engine = FakeEngine()
        recognizer = make_recognizer(engine)

        result = recognizer.recognize_sync(make_png(200, 100))

        assert result.lines[0].text == "Tab Amlodipine 5mg"
        array = engine.inputs[0]
        assert array.shape == (500, 1000, 3)
        assert recognizer.get_statistics()["inference_count"] == 1

    def test_language_hint_selects_engine(self):
        """Test the first language hint picks the engine"""
        hindi = FakeEngine()
        recognizer = make_recognizer(FakeEngine())
        recognizer._engines["hi"] = hindi

        result = recognizer.recognize_sync(make_png(), ["hi", "en"])

        assert len(hindi.inputs) == 1
        assert result.language == "hi"

    def test_engine_failure(self):
        """Test engine exceptions become OracleError"""
        recognizer = make_recognizer(FakeEngine(error=RuntimeError("bad tensor")))

        with pytest.raises(OracleError) as exc_info:
            recognizer.recognize_sync(make_png())

        assert exc_info.value.code == "oracle_error"
        assert "bad tensor" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_recognize(self):
        """Test async recognition through the thread pool"""
        recognizer = make_recognizer(FakeEngine())
        result = await recognizer.recognize(make_png())

        assert result.confidence == pytest.approx(0.8)

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Test slow engines raise OracleTimeoutError"""
        recognizer = make_recognizer(FakeEngine(delay=0.5), OCR_TIMEOUT=0.05)

        with pytest.raises(OracleTimeoutError) as exc_info:
            await recognizer.recognize(make_png())

        assert exc_info.value.timeout_seconds == 0.05

    def test_statistics(self):
        """Test initialized languages are reported"""
        stats = make_recognizer(FakeEngine()).get_statistics()

        assert stats["initialized_languages"] == ["en"]
        assert stats["inference_count"] == 0
        assert stats["language"] == "en"
