"""
Result panel component for the Face ID capture client.

Turns orchestrator snapshots into the text shown to the user: progress while
capturing or submitting, the matched identity on success, and the code and
message on failure. The panel never changes workflow state itself; it only
forwards capture and retry actions to the orchestrator.
"""

from dataclasses import dataclass
from typing import List, Optional

from core.outcome import AntiSpoofingInfo, MatchInfo, Route, VerificationOutcome
from frontend.orchestrator import Orchestrator, WorkflowSnapshot, WorkflowState


@dataclass
class PanelView:
    """Formatted content of the panel for one snapshot."""
    headline: str
    details: List[str]
    can_capture: bool
    can_retry: bool


class ResultPanel:
    """
    Read-only presentation of one orchestrator.

    Responsibilities:
    - Render the snapshot as a headline plus detail lines
    - Show the anti-spoofing verdict when the backend returned one
    - Forward capture / retry actions upward
    """

    def __init__(self, orchestrator: Orchestrator):
        self.orchestrator = orchestrator
        self._view: Optional[PanelView] = None
        orchestrator.add_listener(self.update)

    @property
    def view(self) -> Optional[PanelView]:
        """Last rendered view."""
        return self._view

    def update(self, snapshot: WorkflowSnapshot) -> PanelView:
        self._view = self.render(snapshot)
        return self._view

    def render(self, snapshot: WorkflowSnapshot) -> PanelView:
        state = snapshot.workflow_state
        details: List[str] = []

        if state == WorkflowState.INITIALIZING:
            headline = "Starting camera..."
        elif state == WorkflowState.CAPTURING:
            if snapshot.countdown:
                headline = f"Get ready... {snapshot.countdown}"
            else:
                headline = "Capturing..."
        elif state == WorkflowState.SUBMITTING:
            headline = "Verifying..."
        elif state == WorkflowState.SUCCEEDED:
            headline = self.format_success(snapshot.last_outcome)
        elif state == WorkflowState.FAILED:
            headline = f"❌ {snapshot.error_message} ({snapshot.error_code})"
        elif snapshot.frames_captured:
            headline = f"{snapshot.frames_captured} frames captured. Fill in first and last name to submit."
        else:
            headline = "Ready"

        outcome = snapshot.last_outcome
        if outcome is not None:
            if outcome.match is not None:
                details.append(self.format_match(outcome.match))
            if outcome.anti_spoofing is not None:
                details.extend(self.format_anti_spoofing(outcome.anti_spoofing))

        busy = state in (WorkflowState.INITIALIZING, WorkflowState.CAPTURING, WorkflowState.SUBMITTING)
        return PanelView(
            headline=headline,
            details=details,
            can_capture=not busy,
            can_retry=state in (WorkflowState.SUCCEEDED, WorkflowState.FAILED),
        )

    def format_success(self, outcome: Optional[VerificationOutcome]) -> str:
        if outcome is None:
            return "✅ Done"
        if outcome.route == Route.ENROLL:
            return f"✅ Enrolled: {outcome.message}"
        return f"✅ Welcome, {outcome.match.display_name}"

    def format_match(self, match: MatchInfo) -> str:
        return f"Match: {match.display_name} ({self.format_percentage(match.score)})"

    def format_anti_spoofing(self, info: AntiSpoofingInfo) -> List[str]:
        lines = []
        if info.is_real is not None:
            lines.append(f"Is Real: {'Yes' if info.is_real else 'No'}")
        if info.antispoof_score is not None:
            lines.append(f"Antispoof Score: {info.antispoof_score:.2f}")
        if info.confidence is not None:
            lines.append(f"Confidence: {self.format_percentage(info.confidence)}")
        return lines

    @staticmethod
    def format_percentage(score: float) -> str:
        return f"{score * 100:.1f}%"

    async def on_capture(self) -> WorkflowSnapshot:
        return await self.orchestrator.capture()

    async def on_retry(self) -> WorkflowSnapshot:
        return await self.orchestrator.retry()
