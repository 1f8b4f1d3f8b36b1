#!/usr/bin/env python3
"""
Review CLI for generated violation rules.
Lists drafts and records approve/reject/reopen decisions in the persisted store.
"""

import argparse
import sys
from pathlib import Path

# Add the repository root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from knowledge_server.core import review
from knowledge_server.core.config import get_baseline_path, get_store_path
from knowledge_server.core.store import KnowledgeStore, KnowledgeStoreError


def list_command(store: KnowledgeStore, args) -> int:
    rules = review.list_pending_rules(store) if args.status == "draft" else store.dynamic_rules(args.status)
    if not rules:
        print(f"No {args.status} rules.")
        return 0

    for rule in rules:
        print(f"{rule.id}  [{rule.severity}]  from {rule.source_release or '?'}")
        print(f"    {rule.description}")
        print(f"    fix: {rule.fix_suggestion}")
    print(f"\n{len(rules)} {args.status} rule(s)")
    return 0


def decide_command(store: KnowledgeStore, args) -> int:
    actions = {
        "approve": review.approve_rule,
        "reject": review.reject_rule,
        "reopen": review.reopen_rule,
    }

    failures = 0
    for rule_id in args.rule_ids:
        if store.rule(rule_id) is None:
            print(f"❌ Unknown rule: {rule_id}")
            failures += 1
            continue

        if actions[args.command](store, rule_id, args.reviewer, args.note):
            print(f"✓ {args.command}: {rule_id}")
        else:
            print(f"⚠️  {rule_id} is not in a state that allows '{args.command}'")
            failures += 1

    return 1 if failures else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Review auto-generated violation rules")
    parser.add_argument("--store", default=None, help="Overlay file (default: KNOWLEDGE_STORE_PATH)")
    parser.add_argument("--baseline", default=None, help="Baseline file (default: KNOWLEDGE_BASELINE_PATH)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List generated rules")
    list_parser.add_argument("--status", default="draft", choices=["draft", "approved", "rejected"])

    for name in ("approve", "reject", "reopen"):
        sub = subparsers.add_parser(name, help=f"{name.capitalize()} one or more rules")
        sub.add_argument("rule_ids", nargs="+")
        sub.add_argument("--reviewer", required=True)
        sub.add_argument("--note", default="")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        store = KnowledgeStore(
            baseline_path=args.baseline or get_baseline_path(),
            persist_path=args.store or get_store_path()
        )
    except KnowledgeStoreError as e:
        print(f"💥 {e}")
        return 1

    if args.command == "list":
        return list_command(store, args)
    return decide_command(store, args)


if __name__ == "__main__":
    sys.exit(main())
