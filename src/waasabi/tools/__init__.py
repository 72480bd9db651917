"""Bundled resources for Waasabi."""

import importlib.resources
import pathlib
import shutil
from contextlib import contextmanager

from waasabi.constants import SAMPLE_CONFIG_FILENAME


@contextmanager
def open_sample_config():
    """
    Yield a real filesystem Path to the bundled sample config for the duration
    of the context.
    """
    res = importlib.resources.files(__package__) / SAMPLE_CONFIG_FILENAME
    with importlib.resources.as_file(res) as p:
        yield pathlib.Path(p)


def copy_sample_config_to(dst_path) -> str:
    """
    Copy the bundled sample configuration to dst_path and return the actual file path.
    Always yields a stable file even under zipped installs.
    """
    res = importlib.resources.files(__package__) / SAMPLE_CONFIG_FILENAME
    dst = pathlib.Path(dst_path)
    # If dst is an existing dir or a path without a suffix, treat as directory
    if dst.exists() and dst.is_dir():
        dst = dst / SAMPLE_CONFIG_FILENAME
    elif dst.suffix == "":
        dst = dst / SAMPLE_CONFIG_FILENAME
    with importlib.resources.as_file(res) as p:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(p, dst)
    return str(dst)
