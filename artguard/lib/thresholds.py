"""Threshold resolution across an artifact's materials.

Each material declares its own tolerance per property. An artifact is only as
tolerant as its most sensitive material, so the effective bounds are the
intersection: the highest declared floor and the lowest declared ceiling.
"""

from artguard.lib.config import Property
from artguard.lib.models import UNBOUNDED, Artifact, Bounds
from artguard.logging import get_logger

logger = get_logger("lib.thresholds")

type ThresholdMap = dict[Property, Bounds]


def resolve_bounds(artifact: Artifact, prop: Property) -> Bounds:
    """Intersect the bounds every material declares for one property."""
    lowers = [
        b.lower
        for b in (m.bounds_for(prop) for m in artifact.materials)
        if b.lower is not None
    ]
    uppers = [
        b.upper
        for b in (m.bounds_for(prop) for m in artifact.materials)
        if b.upper is not None
    ]
    if not lowers and not uppers:
        return UNBOUNDED

    bounds = Bounds(
        lower=max(lowers) if lowers else None,
        upper=min(uppers) if uppers else None,
    )
    if (
        bounds.lower is not None
        and bounds.upper is not None
        and bounds.lower > bounds.upper
    ):
        logger.warning(
            "Materials of artifact %s declare disjoint %s bounds "
            "(lower %s > upper %s), every value will alert",
            artifact.id,
            prop,
            bounds.lower,
            bounds.upper,
        )
    return bounds


def resolve_thresholds(artifact: Artifact | None) -> ThresholdMap:
    """Resolve the effective bounds of every property for an artifact.

    An artifact without materials, or a property no material bounds, resolves
    to unbounded on both sides. Passing None (unknown artifact) behaves the
    same way.
    """
    if artifact is None or not artifact.materials:
        return {prop: UNBOUNDED for prop in Property}
    return {prop: resolve_bounds(artifact, prop) for prop in Property}
