"""Contribution weights for the models behind a consensus."""

from __future__ import annotations

from typing import List, Sequence

from forecast_consensus.domain import ModelName, ModelWeight

EQUAL_WEIGHTING_REASON = "Equal weighting"


def calculate_model_weights(models: Sequence[ModelName]) -> List[ModelWeight]:
    """Give each of N models weight 1/N; no models means no weights.

    Weights carry no notion of model skill.
    """
    if not models:
        return []
    weight = 1.0 / len(models)
    return [ModelWeight(model=model, weight=weight, reason=EQUAL_WEIGHTING_REASON) for model in models]
