from __future__ import annotations

import pytest
from fastapi import HTTPException

import app.main as main_module
from app.shared.pagination import PaginationParams, build_page


@pytest.mark.asyncio
async def test_liveness_does_not_touch_database(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _explode() -> bool:
        raise AssertionError("liveness must not probe the database")

    monkeypatch.setattr(main_module, "_is_database_ready", _explode)

    assert await main_module.healthcheck() == {"status": "ok"}


@pytest.mark.asyncio
async def test_readiness_reports_ready_when_database_answers(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _ready() -> bool:
        return True

    monkeypatch.setattr(main_module, "_is_database_ready", _ready)

    response = await main_module.readiness_check()

    assert response["status"] == "ready"
    assert response["database"] == "ok"
    assert "timestamp" in response


@pytest.mark.asyncio
async def test_readiness_returns_503_without_database(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _not_ready() -> bool:
        return False

    monkeypatch.setattr(main_module, "_is_database_ready", _not_ready)

    with pytest.raises(HTTPException) as exc:
        await main_module.readiness_check()
    assert exc.value.status_code == 503


def test_page_reports_whether_more_rows_follow() -> None:
    params = PaginationParams(limit=2, offset=0)

    assert build_page(["a", "b"], 3, params).has_more is True
    assert build_page(["c"], 3, PaginationParams(limit=2, offset=2)).has_more is False
