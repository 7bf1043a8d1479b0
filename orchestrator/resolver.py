"""
Resolver.

Fills the fields an operation needs but the caller's descriptor lacks.
Lookups come from the declarative table in ``lookups``; a lookup whose
own inputs are missing pulls in the lookups that supply them. Lookups are
run in waves by dependency depth, so only true data dependencies are
sequenced. Resolution is all-or-nothing: the first failing lookup aborts
the rest and its error propagates unchanged.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from common.errors import InvalidDescriptor
from transports.transport_interface import Transport, TransportResponse

from .lookups import Lookup, Pin, lookup_for
from .models import Descriptor
from .requests import perform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """The enriched descriptor and every lookup response, keyed by lookup name."""

    descriptor: Descriptor
    responses: Mapping[str, TransportResponse] = field(default_factory=dict)

    def response(self, lookup_name: str) -> TransportResponse | None:
        return self.responses.get(lookup_name)


class Resolver:
    def __init__(self, transport: Transport, max_workers: int = 4):
        self.transport = transport
        self.max_workers = max_workers

    def plan(self, descriptor: Descriptor, needed: Iterable[str], pin: Pin | None = Pin.HEAD) -> list[list[Lookup]]:
        """
        Group the lookups needed to fill ``needed`` into ordered waves.
        Lookups in one wave do not depend on each other. Raises
        InvalidDescriptor, before any I/O, when a field cannot be supplied.
        """
        missing = descriptor.missing(needed)
        if not missing:
            return []
        if pin is None:
            raise InvalidDescriptor(
                f"{descriptor.kind.value} descriptor is missing {', '.join(missing)}, "
                "which this operation cannot look up"
            )

        depth: dict[str, int] = {}
        lookups: dict[str, Lookup] = {}

        def visit(field_name: str, chain: frozenset[str]) -> int:
            lookup = lookup_for(descriptor.kind, field_name, pin)
            if lookup is None:
                raise InvalidDescriptor(
                    f"{descriptor.kind.value} descriptor is missing {field_name} and no lookup provides it"
                )
            if lookup.name in depth:
                return depth[lookup.name]
            if lookup.name in chain:
                raise InvalidDescriptor(f"Circular lookup dependency through {lookup.name}")
            level = 0
            for required in descriptor.missing(lookup.requires):
                level = max(level, visit(required, chain | {lookup.name}) + 1)
            depth[lookup.name] = level
            lookups[lookup.name] = lookup
            return level

        for field_name in missing:
            visit(field_name, frozenset())

        waves: list[list[Lookup]] = [[] for _ in range(max(depth.values()) + 1)]
        for name, level in depth.items():
            waves[level].append(lookups[name])
        return waves

    def resolve(self, descriptor: Descriptor, needed: Iterable[str], pin: Pin | None = Pin.HEAD) -> Resolution:
        """Return a new descriptor with ``needed`` filled in, plus the lookup responses."""
        needed = tuple(needed)
        waves = self.plan(descriptor, needed, pin)
        if not waves:
            return Resolution(descriptor)

        resolved: dict[str, object] = {}
        responses: dict[str, TransportResponse] = {}
        current = descriptor
        for wave in waves:
            for lookup, response in self._run_wave(current, wave):
                responses[lookup.name] = response
                for name, value in lookup.extract(response).items():
                    resolved.setdefault(name, value)
            current = descriptor.layered(resolved)

        still_missing = current.missing(needed)
        if still_missing:
            raise InvalidDescriptor(
                f"{descriptor.kind.value} descriptor is still missing {', '.join(still_missing)} after resolution"
            )
        logger.info(
            "resolved %s on %s descriptor via %s",
            ", ".join(sorted(resolved)),
            descriptor.kind.value,
            ", ".join(responses),
        )
        return Resolution(current, responses)

    def _run_wave(self, descriptor: Descriptor, wave: list[Lookup]) -> list[tuple[Lookup, TransportResponse]]:
        if len(wave) == 1:
            lookup = wave[0]
            logger.debug("lookup %s", lookup.name)
            return [(lookup, perform(self.transport, lookup.request(descriptor)))]

        executor = ThreadPoolExecutor(max_workers=min(len(wave), self.max_workers))
        try:
            futures = [
                (lookup, executor.submit(perform, self.transport, lookup.request(descriptor)))
                for lookup in wave
            ]
            return [(lookup, future.result()) for lookup, future in futures]
        finally:
            executor.shutdown(wait=True, cancel_futures=True)
