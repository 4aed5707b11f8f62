"""
Model lifecycle management for Plant Doctor.

The ModelManager owns the inference engine handle and its load state:

    Unloaded -> Loading -> Ready
                        -> Failed(reason) -> Loading (explicit retry only)

Loads are serialised: concurrent ``load()`` callers share one in-flight
load, and a failed load is never retried automatically.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from plantdoc.core.config import get_settings
from plantdoc.core.errors import LoadError
from plantdoc.core.taxonomy import MODEL_CHANNELS, MODEL_INPUT_SIZE, TAXONOMY
from plantdoc.models.diagnosis import ModelInfo
from plantdoc.services.engine import EngineLoader, InferenceEngine, load_tflite_engine

logger = logging.getLogger(__name__)


class ModelState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class ModelHandle:
    """Opaque reference to a loaded engine."""

    engine: InferenceEngine
    model_path: str
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ModelStatus:
    state: ModelState
    reason: Optional[str] = None


class ModelManager:
    """
    Owns the engine handle for the lifetime of the process.

    Example:
        >>> manager = ModelManager("models/apple_model_final.tflite")
        >>> handle = await manager.load()
        >>> manager.state
        <ModelState.READY: 'ready'>
    """

    def __init__(self, model_path: str, loader: EngineLoader = load_tflite_engine):
        self._model_path = model_path
        self._loader = loader
        self._state = ModelState.UNLOADED
        self._reason: Optional[str] = None
        self._handle: Optional[ModelHandle] = None
        self._loading: Optional[asyncio.Future] = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def handle(self) -> Optional[ModelHandle]:
        """The engine handle when Ready, otherwise None."""
        return self._handle if self._state is ModelState.READY else None

    def status(self) -> ModelStatus:
        return ModelStatus(state=self._state, reason=self._reason)

    async def load(self) -> ModelHandle:
        """
        Load the engine, or return the existing handle when already Ready.

        Returns:
            ModelHandle

        Raises:
            LoadError: If the engine fails to load. State becomes Failed
                until the next explicit call.
        """
        if self._state is ModelState.READY and self._handle is not None:
            logger.debug("Model already loaded")
            return self._handle

        if self._loading is None:
            if self._state is ModelState.FAILED:
                logger.info(f"Retrying model load after failure: {self._reason}")
            self._state = ModelState.LOADING
            self._reason = None
            self._loading = asyncio.ensure_future(self._load())

        # A cancelled caller must not cancel the load other callers await
        return await asyncio.shield(self._loading)

    async def _load(self) -> ModelHandle:
        logger.info(f"Loading model from {self._model_path}...")
        try:
            engine = await asyncio.to_thread(self._loader, self._model_path)
            if engine is None:
                raise LoadError("Model loading returned None")
        except Exception as e:
            self._state = ModelState.FAILED
            self._reason = str(e) or type(e).__name__
            logger.error(f"Model load failed: {self._reason}")
            if isinstance(e, LoadError):
                raise
            raise LoadError(f"Failed to load model from {self._model_path}: {e}") from e
        else:
            self._handle = ModelHandle(engine=engine, model_path=self._model_path)
            self._state = ModelState.READY
            logger.info(
                f"Model loaded successfully (input {MODEL_INPUT_SIZE}x{MODEL_INPUT_SIZE})"
            )
            return self._handle
        finally:
            self._loading = None

    def reset(self) -> None:
        """Drop the engine and return to Unloaded."""
        if self._state is ModelState.LOADING:
            raise RuntimeError("Cannot reset the model while a load is in progress")
        self._handle = None
        self._state = ModelState.UNLOADED
        self._reason = None
        logger.info("Model reset")

    def info(self) -> ModelInfo:
        return ModelInfo(
            model_path=self._model_path,
            state=self._state.value,
            failure_reason=self._reason,
            input_size=MODEL_INPUT_SIZE,
            channels=MODEL_CHANNELS,
            supported_classes=[entry.class_identity for entry in TAXONOMY],
        )


# Module-level singleton instance
_model_manager: Optional[ModelManager] = None


def get_model_manager() -> ModelManager:
    """
    Get the singleton ModelManager, created once per process.

    Returns:
        ModelManager configured with ``settings.model_path``
    """
    global _model_manager
    if _model_manager is None:
        _model_manager = ModelManager(get_settings().model_path)
    return _model_manager


def reset_model_manager() -> None:
    """
    Reset the ModelManager singleton.

    Warning:
        This should not be called in production code.
    """
    global _model_manager
    _model_manager = None
