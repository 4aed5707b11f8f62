"""
Unit tests for the shared analysis pipeline.
"""

import pytest

from conftest import FakeEngine
from plantdoc.core.errors import InferenceError, PreprocessError
from plantdoc.models.diagnosis import SourceMode
from plantdoc.models.frames import RawFrame
from plantdoc.worker.pipeline import AnalysisPipeline, AnalysisRun, AnalysisState, get_analysis_pipeline
from plantdoc.services.inference import InferenceInvoker


def test_run_produces_prediction_and_breakdown(make_manager, leaf_frame):
    engine = FakeEngine(output=[0.1, 0.85, 0.03, 0.02])
    manager = make_manager(engine)

    output = AnalysisPipeline(InferenceInvoker()).run(manager.handle, leaf_frame)

    assert output.prediction.class_index == 1
    assert output.prediction.label == "Apple Black Rot"
    assert output.prediction.confidence == 0.85
    assert [row.probability for row in output.probabilities] == [0.1, 0.85, 0.03, 0.02]
    assert output.inference_time_ms >= 0
    assert engine.shapes == [(1, 128, 128, 3)]


def test_malformed_frame_never_reaches_engine(make_manager):
    engine = FakeEngine()
    manager = make_manager(engine)
    frame = RawFrame(width=10, height=10, pixels=b"\x00" * 3)

    with pytest.raises(PreprocessError):
        AnalysisPipeline(InferenceInvoker()).run(manager.handle, frame)
    assert engine.calls == 0


def test_bad_engine_output_raises(make_manager, leaf_frame):
    manager = make_manager(FakeEngine(output=[0.5, 0.5]))

    with pytest.raises(InferenceError):
        AnalysisPipeline(InferenceInvoker()).run(manager.handle, leaf_frame)


def test_analysis_run_transitions():
    run = AnalysisRun(mode=SourceMode.CAPTURED)
    assert run.state is AnalysisState.IDLE
    assert not run.finished

    run.advance(AnalysisState.PREPARING)
    run.advance(AnalysisState.ANALYZING)
    run.fail("engine fault")

    assert run.state is AnalysisState.FAILED
    assert run.error == "engine fault"
    assert run.finished


def test_shared_pipeline_singleton():
    assert get_analysis_pipeline() is get_analysis_pipeline()
