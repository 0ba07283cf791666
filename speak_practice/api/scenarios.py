"""Scenario catalog endpoints."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException

from speak_practice.models import Scenario
from speak_practice.scenarios import (
    SCENARIOS,
    get_scenario_by_id,
    search_scenarios,
)

router = APIRouter(prefix="/api")


@router.get("/scenarios", response_model=List[Scenario])
async def list_scenarios(
    q: Optional[str] = None,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
):
    """List scenarios, optionally filtered by search text, category and difficulty."""
    scenarios = search_scenarios(q) if q else list(SCENARIOS)
    if category:
        scenarios = [s for s in scenarios if s.category.value == category]
    if difficulty:
        scenarios = [s for s in scenarios if s.difficulty.value == difficulty]
    return scenarios


@router.get("/scenarios/{scenario_id}", response_model=Scenario)
async def get_scenario(scenario_id: str):
    scenario = get_scenario_by_id(scenario_id)
    if scenario is None:
        raise HTTPException(status_code=404, detail=f"Unknown scenario: {scenario_id}")
    return scenario
