from __future__ import annotations

from enum import Enum


class ModelRole(str, Enum):
    SUMMARIZER = "SUMMARIZER"
    CODER = "CODER"
