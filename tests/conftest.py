"""
Shared fixtures for the MyBloom backend test suite.

Provides:
- Settings rooted in a per-test temp directory
- A fresh SQLite journal per test
- Signed-in session and user-scoped store
- Fake identification / enrichment clients and a real JPEG payload
"""

from __future__ import annotations

import io
import logging
import os
import tempfile
from typing import Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest
from PIL import Image

# fastapi_server builds an app at import time; keep it out of the repo
os.environ.setdefault("MYBLOOM_DATA_DIR", tempfile.mkdtemp(prefix="mybloom-test-"))

from config.settings import Session, Settings
from services.discovery_store import DiscoveryDatabase, DiscoveryStore
from services.models import Candidate
from services.wiki_service import NO_DESCRIPTION

logging.getLogger("services").setLevel(logging.WARNING)


# ========================== Helpers ==============================


def make_response(status_code: int = 200, payload=None, json_error: Optional[Exception] = None):
    """requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    response.reason = "reason"
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def plantnet_payload(*species: tuple) -> dict:
    """plantnet_payload(("Rosa gallica", ["French rose"]), ...)"""
    return {
        "results": [
            {
                "score": round(0.9 - i * 0.1, 2),
                "species": {"scientificNameWithoutAuthor": name, "commonNames": list(common)},
            }
            for i, (name, common) in enumerate(species)
        ]
    }


class FakeIdentifier:
    def __init__(self, candidates: Optional[List[Candidate]] = None, error: Optional[Exception] = None):
        self.candidates = candidates or []
        self.error = error
        self.calls: List[bytes] = []

    def identify(self, image_bytes: bytes) -> List[Candidate]:
        self.calls.append(image_bytes)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class FakeEnricher:
    def __init__(self, descriptions: Optional[Dict[str, str]] = None):
        self.descriptions = descriptions or {}
        self.calls: List[tuple] = []

    def describe(self, scientific_name: str, common_names: Sequence[str] = ()) -> str:
        self.calls.append((scientific_name, list(common_names)))
        return self.descriptions.get(scientific_name, NO_DESCRIPTION)


# ========================== Fixtures ==============================


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        plantnet_api_key="test-key",
        data_dir=tmp_path / "data",
        pipeline_workers=2,
    )


@pytest.fixture()
def database(settings):
    return DiscoveryDatabase(settings.database_path)


@pytest.fixture()
def session():
    return Session("user-1")


@pytest.fixture()
def store(database, session):
    return DiscoveryStore(database, session)


@pytest.fixture()
def jpeg_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (32, 24), (30, 140, 60)).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture()
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGBA", (16, 16), (200, 20, 20, 128)).save(buf, format="PNG")
    return buf.getvalue()
