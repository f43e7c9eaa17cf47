"""
Model Repository - ONNX Runtime Inference Adapter

Implements:
- Thread-safe process-wide singleton
- Lazy model loading, at most one InferenceSession per process
- Output key fallback (configured name, else first model output)
- Loading stats for the status endpoints

The session is created on first use and lives until the process exits.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import onnxruntime as ort

from src.core.exceptions import InferenceError
from src.core.metrics import record_model_load_time
from src.engines.violation.preprocessing import CHANNELS, INPUT_SIZE

logger = logging.getLogger(__name__)

SessionFactory = Callable[[str, List[str]], Any]


def _create_onnx_session(model_path: str, providers: List[str]) -> ort.InferenceSession:
    return ort.InferenceSession(model_path, providers=providers)


class ModelRepository:
    """ONNX model repository with lazy, thread-safe session creation."""

    _instance: Optional['ModelRepository'] = None
    _instance_lock = threading.Lock()

    def __init__(
        self,
        model_path: Path,
        input_name: str = "images",
        output_name: str = "output",
        providers: Optional[List[str]] = None,
        input_size: int = INPUT_SIZE,
        session_factory: Optional[SessionFactory] = None
    ):
        self.model_path = Path(model_path)
        self.input_name = input_name
        self.output_name = output_name
        self.providers = providers or ["CPUExecutionProvider"]
        self.input_size = input_size
        self._session_factory = session_factory or _create_onnx_session

        self._session = None
        self._output_names: List[str] = []
        self._load_lock = threading.Lock()
        self._loading_time: Optional[float] = None

        logger.info(
            f"[ModelRepository] Initialized with model={self.model_path}, "
            f"providers={self.providers}"
        )

    @classmethod
    def get_instance(cls, **kwargs) -> 'ModelRepository':
        """Get singleton instance of ModelRepository (thread-safe).

        Keyword arguments are only used by the call that creates the instance.
        """
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    if "model_path" not in kwargs:
                        from src.core.config import settings
                        kwargs.setdefault("model_path", settings.MODEL_PATH)
                        kwargs.setdefault("input_name", settings.MODEL_INPUT_NAME)
                        kwargs.setdefault("output_name", settings.MODEL_OUTPUT_NAME)
                        kwargs.setdefault("providers", settings.onnx_providers)
                        kwargs.setdefault("input_size", settings.INPUT_SIZE)
                    cls._instance = cls(**kwargs)
        return cls._instance

    @classmethod
    def reset_instance(cls):
        """Reset singleton instance (for testing)."""
        with cls._instance_lock:
            cls._instance = None

    # =========================================================================
    # Session (lazy loading, thread-safe)
    # =========================================================================

    def _load_session_impl(self):
        """Create the inference session."""
        if not self.model_path.exists():
            raise InferenceError(
                f"Model file not found: {self.model_path}",
                details={"model_path": str(self.model_path)}
            )

        start = time.time()
        try:
            session = self._session_factory(str(self.model_path), self.providers)
        except Exception as e:
            raise InferenceError(
                f"Failed to load model: {e}",
                details={"model_path": str(self.model_path)}
            ) from e

        self._loading_time = time.time() - start
        self._output_names = [o.name for o in session.get_outputs()]
        record_model_load_time(self._loading_time)

        logger.info(
            f"[ModelRepository] Model loaded in {self._loading_time:.2f}s | "
            f"outputs={self._output_names}"
        )
        return session

    def get_session(self):
        """Get the inference session, creating it on first use."""
        if self._session is None:
            with self._load_lock:
                if self._session is None:
                    self._session = self._load_session_impl()
        return self._session

    def preload(self) -> bool:
        """Load the model ahead of the first request."""
        try:
            self.get_session()
            return True
        except InferenceError as e:
            logger.warning(f"[ModelRepository] Preload failed: {e.message}")
            return False

    @property
    def models_loaded(self) -> bool:
        return self._session is not None

    def get_loading_stats(self) -> Dict[str, Any]:
        return {
            "model_path": str(self.model_path),
            "providers": self.providers,
            "input_name": self.input_name,
            "output_names": self._output_names,
            "loading_time": self._loading_time,
        }

    # =========================================================================
    # Inference
    # =========================================================================

    def _resolve_output_key(self) -> str:
        """Configured output if the model exposes it, else the first output."""
        if self.output_name in self._output_names:
            return self.output_name
        if self._output_names:
            return self._output_names[0]
        return self.output_name

    def predict(self, tensor: np.ndarray) -> List[float]:
        """
        Run the model on a normalized tensor.

        Args:
            tensor: Flat channel-major float32 array (3 * size * size values)

        Returns:
            Flat list of class probabilities

        Raises:
            InferenceError: If the model cannot be loaded or yields no output
        """
        session = self.get_session()
        output_key = self._resolve_output_key()

        feeds = {
            self.input_name: np.asarray(tensor, dtype=np.float32).reshape(
                1, CHANNELS, self.input_size, self.input_size
            )
        }
        if output_key not in self._output_names:
            raise InferenceError(
                f"Output tensor not found for key {output_key}",
                output_key=output_key
            )

        try:
            outputs = session.run([output_key], feeds)
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}", output_key=output_key) from e

        if not outputs or outputs[0] is None:
            raise InferenceError(
                f"Output tensor not found for key {output_key}",
                output_key=output_key
            )

        return np.asarray(outputs[0], dtype=np.float64).reshape(-1).tolist()
