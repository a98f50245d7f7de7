"""
HTTP surface tests.

The converter dependency is overridden with one wired to the in-memory
interpreter, so no WASM runtime or bundled assets are required.
"""

from urllib.parse import unquote

import pytest
from fastapi.testclient import TestClient

from printready.app.config import Settings, get_settings
from printready.app.core.converter import PdfX3Converter, get_converter
from printready.app.interpreter.loader import InterpreterLoader
from printready.app.main import app
from printready.tests.fixtures.fake_interpreter import (
    FakeAssetLoader,
    FakeInterpreterModule,
)
from printready.tests.fixtures.icc_factory import CMYK_PROFILE
from printready.tests.fixtures.pdf_factory import minimal_valid_pdf, not_a_pdf


class FixedLoaderConverter(PdfX3Converter):
    """Routes every request through one fake asset loader."""

    def __init__(self, assets: FakeAssetLoader, settings: Settings) -> None:
        super().__init__(
            interpreter_loader=InterpreterLoader(capability_check=lambda: True),
            settings=settings,
        )
        self.assets = assets

    async def convert_one(self, document, options):
        options = options.model_copy(update={"asset_loader": self.assets})
        return await super().convert_one(document, options)


@pytest.fixture
def assets():
    return FakeAssetLoader()


@pytest.fixture
def client(assets):
    settings = Settings(max_upload_mb=1)
    app.dependency_overrides[get_converter] = lambda: FixedLoaderConverter(assets, settings)
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _pdf_upload(data: bytes | None = None):
    return {"file": ("input.pdf", data if data is not None else minimal_valid_pdf(), "application/pdf")}


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_convert_preset(client):
    response = client.post(
        "/convert",
        files=_pdf_upload(),
        data={"output_profile": "gracol", "title": "Flyer"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-output-condition-identifier"] == "CGATS 21.2"
    assert response.content.startswith(b"%PDF")
    assert b"CGATS 21.2" in response.content


def test_convert_custom_profile(client):
    response = client.post(
        "/convert",
        files={
            **_pdf_upload(),
            "custom_profile": ("press.icc", CMYK_PROFILE, "application/vnd.iccprofile"),
        },
        data={"output_profile": "custom", "output_condition_identifier": "Press XYZ"},
    )

    assert response.status_code == 200
    assert response.headers["x-output-condition-identifier"] == "Press XYZ"


def test_custom_without_profile_is_unprocessable(client, assets):
    response = client.post("/convert", files=_pdf_upload(), data={"output_profile": "custom"})

    assert response.status_code == 422
    assert "custom_profile" in response.json()["detail"]
    assert assets.module_loads == 0


def test_unknown_profile_is_unprocessable(client):
    response = client.post("/convert", files=_pdf_upload(), data={"output_profile": "swop"})

    assert response.status_code == 422


def test_invalid_pdf_is_unprocessable(client, assets):
    response = client.post(
        "/convert",
        files=_pdf_upload(not_a_pdf()),
        data={"output_profile": "fogra39"},
    )

    assert response.status_code == 422
    assert "Invalid PDF format" in response.json()["detail"]
    assert assets.module_loads == 0


def test_oversized_upload_rejected(client):
    response = client.post(
        "/convert",
        files=_pdf_upload(b"%PDF" + bytes(1024 * 1024)),
        data={"output_profile": "fogra39"},
    )

    assert response.status_code == 413


def test_missing_asset_is_service_unavailable(client, assets):
    assets.profiles.clear()

    response = client.post("/convert", files=_pdf_upload(), data={"output_profile": "fogra39"})

    assert response.status_code == 503
    assert "ISOcoated_v2_eci.icc" in response.json()["detail"]


def test_interpreter_failure_is_server_error(client, assets):
    assets.module = FakeInterpreterModule(exit_code=1)

    response = client.post("/convert", files=_pdf_upload(), data={"output_profile": "srgb"})

    assert response.status_code == 500
    assert "conversion failed" in response.json()["detail"]


def test_non_ascii_identifier_is_percent_encoded_in_header(client):
    response = client.post(
        "/convert",
        files={
            **_pdf_upload(),
            "custom_profile": ("press.icc", CMYK_PROFILE, "application/vnd.iccprofile"),
        },
        data={
            "output_profile": "custom",
            "title": "Broschüre",
            "output_condition_identifier": "FOGRA39 – coated",
        },
    )

    assert response.status_code == 200
    header = response.headers["x-output-condition-identifier"]
    assert header == "FOGRA39 %E2%80%93 coated"
    assert unquote(header) == "FOGRA39 – coated"
