import os
from pathlib import Path
from typing import List, Optional

from ..settings.settings import get_data_dir


def get_models_dir() -> Path:
    return get_data_dir() / "models"


def resolve_model_dir(model: str) -> Path:
    path = Path(model).expanduser()
    if path.is_absolute():
        return path
    return get_models_dir() / model


def find_file_by_suffix(directory: Path, *suffixes: str) -> Optional[str]:
    try:
        for filename in sorted(os.listdir(directory)):
            for suffix in suffixes:
                if filename.endswith(suffix):
                    return os.path.join(directory, filename)
    except OSError:
        pass
    return None


def find_file_exact(directory: Path, candidates: List[str]) -> Optional[str]:
    for name in candidates:
        path = os.path.join(directory, name)
        if os.path.exists(path):
            return path
    return None


def is_transducer_model(model_dir: Path) -> bool:
    return find_file_exact(
        model_dir, ["joiner.onnx", "joiner.int8.onnx", "joiner.fp16.onnx"]
    ) is not None
