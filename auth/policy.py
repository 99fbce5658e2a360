"""
auth/policy.py -- Owner-only authorization rule.

The rule is the whole policy: a mutation on a resource is allowed only for the
user who created it. Ids are compared as strings so an int primary key and a
string id from another source compare equal.

Callers must resolve the resource (and answer 404) before asking, so a
missing resource never turns into a 403.
"""

from __future__ import annotations

from enum import Enum


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def authorize(requester_id: object, owner_id: object) -> Decision:
    if requester_id is None or owner_id is None:
        return Decision.DENY
    return Decision.ALLOW if str(requester_id) == str(owner_id) else Decision.DENY
