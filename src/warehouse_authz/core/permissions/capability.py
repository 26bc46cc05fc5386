"""One-time detection of which permission schema generation is present.

Two probes run independently of each other: a deployment may have warehouse
assignments without the extended permission tables, or the reverse. Each
probe moves through UNKNOWN -> PROBING -> LEGACY | FULL once; LEGACY and
FULL are terminal until reset(). A failed probe means LEGACY and is never
raised to callers, so a half-migrated database keeps the service available.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal

import structlog

from warehouse_authz.core.permissions.stores import PermissionStore


logger = structlog.get_logger()


class CapabilityMode(StrEnum):
    """State of one schema probe."""

    UNKNOWN = "unknown"
    PROBING = "probing"
    LEGACY = "legacy"
    FULL = "full"


@dataclass(frozen=True)
class CapabilityState:
    """Current mode of a probe and when it was settled."""

    mode: CapabilityMode = CapabilityMode.UNKNOWN
    resolved_at: datetime | None = None

    @property
    def is_resolved(self) -> bool:
        return self.mode in (CapabilityMode.LEGACY, CapabilityMode.FULL)


class _Probe:
    """Memoized result of one probe.

    Concurrent callers wait on a single in-flight probe. A reset() while a
    probe is in flight discards that probe's result.
    """

    def __init__(
        self,
        name: str,
        probe: Callable[[], Awaitable[None]],
        pinned: CapabilityMode | None = None,
    ) -> None:
        self.name = name
        self._probe = probe
        self._pinned = pinned
        self._lock = asyncio.Lock()
        self._generation = 0
        self.state = CapabilityState()

    async def resolve(self) -> CapabilityMode:
        if self.state.is_resolved:
            return self.state.mode

        async with self._lock:
            if self.state.is_resolved:
                return self.state.mode

            generation = self._generation
            self.state = CapabilityState(mode=CapabilityMode.PROBING)
            mode = await self._run()

            if generation != self._generation:
                # reset() happened mid-probe; answer this caller but keep nothing
                return mode

            self.state = CapabilityState(mode=mode, resolved_at=datetime.now(UTC))
            logger.info("capability_detected", probe=self.name, mode=mode.value)
            return mode

    async def _run(self) -> CapabilityMode:
        if self._pinned is not None:
            return self._pinned

        try:
            await self._probe()
        except Exception as exc:
            logger.warning(
                "capability_probe_failed",
                probe=self.name,
                error_type=type(exc).__name__,
            )
            return CapabilityMode.LEGACY
        return CapabilityMode.FULL

    def reset(self) -> None:
        self._generation += 1
        self.state = CapabilityState()


class CapabilityDetector:
    """Detects, once per process, which schema generation each concern uses.

    Args:
        store: Store whose probe methods are called
        permission_mode: "auto" probes the permission tables; "legacy" or
            "full" pins the permission result without querying. The
            warehouse probe always runs.
    """

    def __init__(
        self,
        store: PermissionStore,
        permission_mode: Literal["auto", "legacy", "full"] = "auto",
    ) -> None:
        pinned = None if permission_mode == "auto" else CapabilityMode(permission_mode)
        self._permissions = _Probe("permissions", store.probe_permission_schema, pinned)
        self._warehouses = _Probe("warehouses", store.probe_warehouse_schema)

    @property
    def permission_state(self) -> CapabilityState:
        return self._permissions.state

    @property
    def warehouse_state(self) -> CapabilityState:
        return self._warehouses.state

    async def permission_mode(self) -> CapabilityMode:
        """LEGACY or FULL for the role/user permission tables."""
        return await self._permissions.resolve()

    async def warehouse_mode(self) -> CapabilityMode:
        """LEGACY or FULL for the warehouse assignment table."""
        return await self._warehouses.resolve()

    def reset(self) -> None:
        """Forget both results so the next request probes again."""
        self._permissions.reset()
        self._warehouses.reset()
        logger.info("capability_reset")
