from __future__ import annotations
"""Simple finite state machine utility for enforcing allowed status transitions.

Designed for lightweight lifecycle documents (Withdrawal, platform policies).
Usage:
    from dentpal.utils.fsm import TransitionValidator
    WITHDRAWAL_FSM = TransitionValidator({
        'pending': {'approved', 'rejected'},
        'approved': {'processing', 'failed'},
        'processing': {'completed', 'failed'},
    })
    WITHDRAWAL_FSM.assert_can_transition(current_status, target_status)

Raises InvalidTransition (HTTP 400) if invalid, so scripts and views share it.
"""
from typing import Dict, Iterable, Optional, Set
from werkzeug.exceptions import BadRequest


class InvalidTransition(BadRequest):
    def __init__(self, current: Optional[str], target: str, field_name: str = 'status'):
        super().__init__(description=f"Invalid {field_name} transition {current} -> {target}")
        self.current = current
        self.target = target


class TransitionValidator:
    def __init__(self, graph: Dict[str, Set[str]], field_name: str = 'status'):
        self.graph = graph
        self.field_name = field_name

    def can_transition(self, current: Optional[str], target: str) -> bool:
        return target in self.graph.get(current, set())

    def assert_can_transition(self, current: Optional[str], target: str):
        if not self.can_transition(current, target):
            raise InvalidTransition(current, target, self.field_name)
        return True

    def sources_for(self, target: str) -> Iterable[str]:
        return sorted(s for s, targets in self.graph.items() if target in targets)

__all__ = ['InvalidTransition', 'TransitionValidator']
