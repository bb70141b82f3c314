"""Metric creation that tolerates the defining module being imported twice."""

from collections.abc import Sequence
from typing import Any, TypeVar

from prometheus_client import REGISTRY
from prometheus_client.metrics import MetricWrapperBase

MetricT = TypeVar("MetricT", bound=MetricWrapperBase)


def get_or_create(
    metric_cls: type[MetricT],
    name: str,
    documentation: str,
    labelnames: Sequence[str] = (),
    **kwargs: Any,
) -> MetricT:
    """
    Return the collector registered as ``name``, creating it on first use.

    ``uvicorn --reload`` and test collection can import a metrics module
    more than once, and the default registry rejects a second collector
    with the same name.

    Raises:
        TypeError: If ``name`` is already taken by another metric type.
    """
    existing = REGISTRY._names_to_collectors.get(name)
    if existing is None:
        return metric_cls(name, documentation, labelnames, **kwargs)

    if not isinstance(existing, metric_cls):
        raise TypeError(
            f"Metric {name!r} is already registered as "
            f"{type(existing).__name__}"
        )
    return existing
