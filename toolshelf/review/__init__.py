"""
Review Module

Status transition rules for tool submissions.
"""

from toolshelf.review.state_machine import (
    REVIEWABLE_STATUSES,
    TERMINAL_STATUSES,
    Transition,
    initial_status,
    parse_action,
    plan_review,
    plan_withdrawal,
)

__all__ = [
    'REVIEWABLE_STATUSES',
    'TERMINAL_STATUSES',
    'Transition',
    'initial_status',
    'parse_action',
    'plan_review',
    'plan_withdrawal',
]
