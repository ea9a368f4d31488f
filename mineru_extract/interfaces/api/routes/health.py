from __future__ import annotations

from fastapi import APIRouter

from mineru_extract import __version__
from mineru_extract.application.actions.registry import ACTIONS


router = APIRouter()


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": __version__,
        "actions": sorted(ACTIONS),
    }
