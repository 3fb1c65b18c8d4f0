#!/usr/bin/env python3
"""Example: Quickstart for aumos-rpac

Minimal working example: declare policies and dynamic permissions in a
config dict, authorize a few requests, and inspect the decisions.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install aumos-rpac
"""
from __future__ import annotations

from types import SimpleNamespace

import aumos_rpac as rpac


class Post:
    __rpac_relationships__ = ("owner",)

    def __init__(self, owner_id: int) -> None:
        self.owner_id = owner_id
        self.deleted_at = None

    def restore(self) -> None:
        self.deleted_at = None


def main() -> None:
    print(f"aumos-rpac version: {rpac.__version__}")

    # Step 1: Build an authorizer from config
    authorizer = rpac.RpacAuthorizer({
        "permissions": [
            {"signature": "Post:update", "role": "owner"},
            {"signature": "Post:delete", "role": "owner"},
        ],
        "policies": {
            "Post": {
                "actions": {
                    "viewAny": "*",
                    "view": "*",
                    "create": ["member"],
                    "update": ["editor"],
                    "forceDelete": ["admin"],
                }
            }
        },
        "gates": {"staff": "staff|admin"},
    })
    print(f"Authorizer ready: namespaces={authorizer.namespaces}")

    # Step 2: Authorize requests
    alice = SimpleNamespace(id=1, roles=["member"])
    bob = SimpleNamespace(id=2, roles=["editor"])
    post = Post(owner_id=1)

    checks = [
        ("viewAny", None, None),
        ("create", None, None),
        ("create", alice, None),
        ("update", alice, post),
        ("update", bob, post),
        ("delete", bob, post),
    ]
    print("\nDecisions:")
    for action, subject, entity in checks:
        decision = authorizer.decide(action, subject, entity, namespace="Post")
        who = "guest" if subject is None else f"user {subject.id}"
        icon = "ALLOW" if decision.allowed else "DENY"
        print(f"  [{icon}] {who:<8} {action:<8} reason={decision.reason.value}")

    # Step 3: Soft-delete guards
    post.deleted_at = "2024-06-01T00:00:00Z"
    decision = authorizer.decide("delete", alice, post)
    print(f"\nDelete an already-deleted post: allowed={decision.allowed} ({decision.reason.value})")
    decision = authorizer.decide("restore", alice, post)
    print(f"Restore it: allowed={decision.allowed} ({decision.reason.value})")

    # Step 4: Role gate
    print(f"\nStaff gate for bob: {authorizer.check_role(bob, 'staff')}")


if __name__ == "__main__":
    main()
