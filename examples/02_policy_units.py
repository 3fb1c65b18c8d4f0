#!/usr/bin/env python3
"""Example: Code-defined policy units, hot-reloaded permissions and auditing

Declares a PolicyUnit with a custom action, loads dynamic permissions
from a YAML file, swaps them at runtime with refresh(), and writes every
decision to a JSONL audit trail.

Usage:
    python examples/02_policy_units.py

Requirements:
    pip install aumos-rpac
"""
from __future__ import annotations

import tempfile
from pathlib import Path
from types import SimpleNamespace

import aumos_rpac as rpac
from aumos_rpac.policies.unit import RoleSpec


class ArticlePolicy(rpac.PolicyUnit):
    ACTIONS = {"publish": rpac.ActionKind.MODEL, "export": rpac.ActionKind.NON_MODEL}

    def permissions(self, action: str) -> RoleSpec:
        if action in ("view", "viewAny"):
            return "*"
        if action == "publish":
            return ["editor"]
        return None


class Article:
    __rpac_relationships__ = ("author",)

    def __init__(self, author_id: int) -> None:
        self.author_id = author_id
        self.deleted_at = None


def main() -> None:
    workdir = Path(tempfile.mkdtemp(prefix="rpac-example-"))
    permissions_file = workdir / "permissions.yaml"
    permissions_file.write_text(
        'version: "1"\npermissions:\n  "Article:update": [author]\n',
        encoding="utf-8",
    )

    policy = ArticlePolicy()
    print(f"Policy {policy.namespace}: model={policy.model_actions()}")
    print(f"  non-model={policy.non_model_actions()}")

    audit = rpac.DecisionAuditLogger(workdir / "audit.jsonl")
    store = rpac.PermissionStore.from_yaml(permissions_file)
    resolver = rpac.PermissionResolver(
        policy,
        store,
        rpac.MappingRoleProvider(),
        audit_logger=audit,
    )

    writer = SimpleNamespace(id=7, roles=["writer"])
    article = Article(author_id=7)

    # One context per request: static roles are read once.
    context = resolver.new_context(writer, article)
    print(f"\nupdate as author:  {resolver.update(writer, article, context=context)}")
    print(f"publish as author: {resolver.authorize('publish', writer, article, context=context)}")

    # Grant publish to authors at runtime.
    permissions_file.write_text(
        'version: "1"\npermissions:\n'
        '  "Article:update": [author]\n'
        '  "Article:publish": [author]\n',
        encoding="utf-8",
    )
    snapshot = store.refresh()
    print(f"\nReloaded permissions (snapshot v{snapshot.version}, {len(snapshot)} records)")
    print(f"publish as author: {resolver.authorize('publish', writer, article)}")

    print(f"\nAudit trail: {audit.count()} decisions in {audit.log_path}")
    for entry in audit.last_n(3):
        print(f"  {entry.signature:<18} allowed={entry.allowed} reason={entry.reason}")
    print(f"Reasons: {audit.reason_counts()}")


if __name__ == "__main__":
    main()
