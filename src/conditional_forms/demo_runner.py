from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from conditional_forms.contracts import FormOperationError, SessionConfig
from conditional_forms.loan_application import tab_spec
from conditional_forms.session import FormSession

logger = logging.getLogger(__name__)

STEP_OPS = ("edit", "add_item", "remove_item", "move_item", "submit", "cancel")


@dataclass(frozen=True)
class StepExecution:
    step_index: int
    op: str
    state: str
    errors: list[dict[str, str]]
    outcome: str


@dataclass(frozen=True)
class ScenarioExecution:
    scenario_id: str
    tab: str
    steps: list[StepExecution]

    @property
    def final_state(self) -> str:
        return self.steps[-1].state if self.steps else "editing"


def load_scenario_packs(packs_dir: Path) -> list[dict[str, Any]]:
    packs: list[dict[str, Any]] = []
    for path in sorted(packs_dir.glob("*.json")):
        payload = json.loads(path.read_text(encoding="utf-8"))
        payload["_source"] = str(path)
        packs.append(payload)
    return packs


def _apply_step(session: FormSession, step: dict[str, Any]) -> str:
    op = str(step.get("op", ""))
    if op == "edit":
        session.edit(step["path"], step.get("value"))
        return "ok"
    if op == "add_item":
        if "value" in step:
            session.add_item(step["path"], step["value"])
        else:
            session.add_item(step["path"])
        return "ok"
    if op == "remove_item":
        session.remove_item(step["path"], int(step["index"]))
        return "ok"
    if op == "move_item":
        session.move_item(step["path"], int(step["from"]), int(step["to"]))
        return "ok"
    if op == "submit":
        result = session.submit()
        return result.status
    if op == "cancel":
        session.cancel()
        return "cancelled"
    raise ValueError(f"unknown scenario op {op!r}; expected one of {STEP_OPS}")


def run_scenario(pack: dict[str, Any], *, config: SessionConfig | None = None) -> ScenarioExecution:
    spec = tab_spec(str(pack["tab"]))
    session = FormSession(
        spec.schema(),
        tab_id=spec.tab_id,
        config=config,
        initial_data=pack.get("initial_data"),
    )
    steps: list[StepExecution] = []

    for step_index, step in enumerate(pack.get("steps", []), start=1):
        try:
            outcome = _apply_step(session, step)
        except FormOperationError as exc:
            # a misdriven step is recorded, the rest of the scenario still runs
            logger.warning("scenario %s step %d refused: %s", pack.get("scenario_id"), step_index, exc)
            outcome = "refused"
        steps.append(
            StepExecution(
                step_index=step_index,
                op=str(step.get("op")),
                state=session.state.value,
                errors=[{"path": e.dotted_path, "kind": e.kind.value} for e in session.errors],
                outcome=outcome,
            )
        )

    return ScenarioExecution(scenario_id=str(pack["scenario_id"]), tab=spec.tab_id, steps=steps)


def summarize(executions: list[ScenarioExecution]) -> dict[str, float]:
    submits = [s for e in executions for s in e.steps if s.op == "submit"]
    accepted = sum(1 for s in submits if s.outcome == "accepted")
    rejected = sum(1 for s in submits if s.outcome == "rejected")
    total_steps = sum(len(e.steps) for e in executions)
    steps_with_errors = sum(1 for e in executions for s in e.steps if s.errors)

    return {
        "scenarios": len(executions),
        "submissions": len(submits),
        "accepted": accepted,
        "rejected": rejected,
        "acceptance_rate": round(accepted / len(submits), 4) if submits else 0.0,
        "steps_with_errors_rate": round(steps_with_errors / total_steps, 4) if total_steps else 0.0,
    }


def run_packs(packs_dir: Path, *, config: SessionConfig | None = None) -> dict[str, Any]:
    packs = load_scenario_packs(packs_dir)
    executions = [run_scenario(pack, config=config) for pack in packs]
    return {
        "scenarios": [
            {
                "scenario_id": execution.scenario_id,
                "tab": execution.tab,
                "final_state": execution.final_state,
                "steps": [
                    {
                        "step_index": step.step_index,
                        "op": step.op,
                        "state": step.state,
                        "outcome": step.outcome,
                        "errors": step.errors,
                    }
                    for step in execution.steps
                ],
            }
            for execution in executions
        ],
        "summary_metrics": summarize(executions),
    }
