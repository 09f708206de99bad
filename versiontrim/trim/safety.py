"""Safety gate for irreversible trimming runs.

Decides the effective run mode before any discovery work:
    - the first run ever is always a dry run
    - a recent retention policy change blocks the run entirely
    - delete mode requires the exact confirmation phrase
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Protocol

from versiontrim.models.retention_policy import RetentionPolicy
from versiontrim.models.trim_operation import RunMode
from versiontrim.trim.errors import ConfirmationDeclined, RunBlocked

logger = logging.getLogger(__name__)

CONFIRMATION_PHRASE = "DELETE VERSIONS"
POLICY_COOLDOWN = timedelta(minutes=30)


class ConfirmationProvider(Protocol):
    """Supplies the delete confirmation token (None = abort).

    The tenant retention policy, when one is configured, is passed along so
    interactive providers can show it before asking.
    """

    def request_token(self, prompt: str, policy: Optional[RetentionPolicy] = None) -> Optional[str]: ...


class StaticConfirmation:
    """Pre-approved token for non-interactive callers."""

    def __init__(self, token: Optional[str]) -> None:
        self.token = token

    def request_token(self, prompt: str, policy: Optional[RetentionPolicy] = None) -> Optional[str]:
        return self.token


@dataclass(frozen=True)
class GateDecision:
    """Outcome of the safety gate.

    Attributes:
        mode: Effective run mode
        blocked: True if the run must not start at all
        reason: Human-readable explanation
        minutes_since_change: Minutes since the last policy change (None if unknown)
        forced_dry_run: True when delete was requested but overridden by first-run safety
    """

    mode: RunMode
    blocked: bool
    reason: str
    minutes_since_change: Optional[int] = None
    forced_dry_run: bool = False

    @property
    def needs_confirmation(self) -> bool:
        return not self.blocked and self.mode == RunMode.DELETE


class SafetyGate:
    """Run-mode decision and delete confirmation.

    Attributes:
        cooldown: Minimum time between a policy change and a run
        phrase: Exact, case-sensitive confirmation phrase
    """

    def __init__(self, cooldown: timedelta = POLICY_COOLDOWN, phrase: str = CONFIRMATION_PHRASE) -> None:
        self.cooldown = cooldown
        self.phrase = phrase

    def decide(
        self,
        has_prior_run: bool,
        delete_requested: bool,
        last_policy_change_utc: Optional[datetime],
        now: datetime,
    ) -> GateDecision:
        """Decide the effective mode for a run.

        Args:
            has_prior_run: Whether a completed run has been recorded
            delete_requested: Whether the caller asked for delete mode
            last_policy_change_utc: When the retention policy last changed (None if unknown)
            now: Current UTC time

        Returns:
            GateDecision; nothing is persisted
        """
        minutes_since_change = None
        if last_policy_change_utc is not None:
            elapsed = now - last_policy_change_utc
            minutes_since_change = int(elapsed.total_seconds() // 60)

            if elapsed < self.cooldown:
                mode = RunMode.DELETE if (has_prior_run and delete_requested) else RunMode.DRY_RUN
                return GateDecision(
                    mode=mode,
                    blocked=True,
                    reason=(
                        f"Retention policy changed {minutes_since_change} minute(s) ago "
                        f"(cooldown {int(self.cooldown.total_seconds() // 60)} minutes)"
                    ),
                    minutes_since_change=minutes_since_change,
                )

        if not has_prior_run:
            return GateDecision(
                mode=RunMode.DRY_RUN,
                blocked=False,
                reason="No previous run recorded; first run is always a dry run",
                minutes_since_change=minutes_since_change,
                forced_dry_run=delete_requested,
            )

        if delete_requested:
            return GateDecision(
                mode=RunMode.DELETE,
                blocked=False,
                reason="Delete requested after a previous run",
                minutes_since_change=minutes_since_change,
            )

        return GateDecision(
            mode=RunMode.DRY_RUN,
            blocked=False,
            reason="Dry run requested",
            minutes_since_change=minutes_since_change,
        )

    def enforce(
        self,
        decision: GateDecision,
        provider: Optional[ConfirmationProvider],
        policy: Optional[RetentionPolicy] = None,
    ) -> RunMode:
        """Turn a decision into a mode the run may proceed with.

        Raises:
            RunBlocked: If the cooldown blocks the run
            ConfirmationDeclined: If delete mode is not confirmed
        """
        if decision.blocked:
            raise RunBlocked(decision.minutes_since_change or 0, int(self.cooldown.total_seconds() // 60))

        if decision.needs_confirmation:
            self.confirm(provider, policy)

        return decision.mode

    def confirm(self, provider: Optional[ConfirmationProvider], policy: Optional[RetentionPolicy] = None) -> None:
        """Require the exact confirmation phrase.

        Raises:
            ConfirmationDeclined: If the provider is missing or the token does not match
        """
        prompt = f"Type '{self.phrase}' to permanently delete versions"
        token = provider.request_token(prompt, policy=policy) if provider else None

        if token != self.phrase:
            logger.warning("Delete confirmation not accepted")
            raise ConfirmationDeclined()

        logger.info("Delete confirmation accepted")
