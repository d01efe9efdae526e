"""Helpers to compute visibility deltas around a session mutation.

Exposes a single function that computes now_visible, now_hidden, and the list
of suppressed values using a caller-provided probe for value existence.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Tuple


def compute_visibility_delta(
    pre_visible: Iterable[str],
    post_visible: Iterable[str],
    has_value: Callable[[str], bool],
) -> Tuple[List[str], List[str], List[str]]:
    """Compute visibility delta and suppressed values.

    - now_visible: ids newly visible (in post but not in pre)
    - now_hidden: ids newly hidden (in pre but not in post)
    - suppressed_values: subset of now_hidden that currently hold a value

    Exceptions raised by `has_value` propagate to the caller.
    """
    pre_set = {str(i).strip() for i in pre_visible if i is not None and str(i).strip()}
    post_set = {str(i).strip() for i in post_visible if i is not None and str(i).strip()}

    now_visible = sorted(post_set - pre_set)
    now_hidden = sorted(pre_set - post_set)
    suppressed_values = [i for i in now_hidden if has_value(i)]
    return now_visible, now_hidden, suppressed_values


__all__ = ["compute_visibility_delta"]
