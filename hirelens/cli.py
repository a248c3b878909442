from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from hirelens.errors import InputError
from hirelens.models import MatchResult
from hirelens.service import JobAssistant, build_assistant


def _read_resume(path: str) -> str:
    p = Path(path)
    if not p.exists():
        print(f"\n[hirelens] Resume file not found: {p}")
        print("Tip: pass a plain-text resume (.txt); PDF extraction is not handled here.\n")
        raise SystemExit(2)
    return p.read_text(encoding="utf-8")


def _read_jobs(path: str) -> List[Dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        print(f"\n[hirelens] Jobs file not found: {p}\n")
        raise SystemExit(2)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"\n[hirelens] Jobs file is not valid JSON: {p} (line {exc.lineno}, column {exc.colno})\n")
        raise SystemExit(2)
    # Accept either a bare list or {"jobs": [...]}
    if isinstance(data, dict):
        data = data.get("jobs", [])
    if not isinstance(data, list):
        print("\n[hirelens] Jobs file must contain a JSON list of jobs.\n")
        raise SystemExit(2)
    bad = [i for i, j in enumerate(data) if not isinstance(j, dict)]
    if bad:
        print(f"\n[hirelens] Jobs file entry #{bad[0]} is not a JSON object.\n")
        raise SystemExit(2)
    return data


def print_human_matches(results: List[MatchResult], titles: Dict[str, str]) -> None:
    print("\nMatches:")
    for idx, r in enumerate(results, start=1):
        tag = " [fallback]" if r.metadata.degraded else ""
        print(f"{idx}. {titles.get(r.job_id, r.job_id)}  score={r.score}{tag}")
        if r.explanation.matching_skills:
            print(f"   matches: {', '.join(r.explanation.matching_skills)}")
        print(f"   {r.explanation.keyword_alignment}")
        if r.metadata.error:
            print(f"   error: {r.metadata.error}")


async def _run_match(assistant: JobAssistant, args: argparse.Namespace) -> None:
    resume = _read_resume(args.resume)
    jobs = _read_jobs(args.jobs)

    if args.detailed:
        job = next((j for j in jobs if str(j.get("id")) == args.detailed), None)
        if job is None:
            print(f"\n[hirelens] No job with id {args.detailed!r} in {args.jobs}\n")
            raise SystemExit(2)
        results = [await assistant.match_one(resume, job)]
    else:
        results = await assistant.match_all(resume, jobs)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        titles = {str(j.get("id")): str(j.get("title", "")) for j in jobs}
        print_human_matches(results, titles)


async def _run_chat(assistant: JobAssistant, args: argparse.Namespace) -> None:
    result = await assistant.chat(args.conversation_id, args.message)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    print(f"[{result.intent.value}] {result.response}")
    if result.filter_updates is not None:
        print(f"filter updates: {json.dumps(result.filter_updates)}")


async def _run_analyze(assistant: JobAssistant, args: argparse.Namespace) -> None:
    analysis = await assistant.analyze_resume(_read_resume(args.resume))
    print(json.dumps(analysis.to_dict(), indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="hirelens: resume/job matching and filter assistant")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline decisions to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    m = sub.add_parser("match", help="Score jobs against a resume")
    m.add_argument("--resume", required=True, help="Path to resume .txt")
    m.add_argument("--jobs", required=True, help="Path to a JSON list of jobs")
    m.add_argument("--detailed", default="", metavar="JOB_ID", help="Detailed match for one job id")
    m.add_argument("--json", action="store_true", help="Print JSON only (machine-readable)")

    c = sub.add_parser("chat", help="Send one message to the assistant")
    c.add_argument("message")
    c.add_argument("--conversation-id", default="local-user")
    c.add_argument("--json", action="store_true", help="Print JSON only (machine-readable)")

    a = sub.add_parser("analyze", help="Extract a career profile from a resume")
    a.add_argument("--resume", required=True, help="Path to resume .txt")

    return parser


_COMMANDS = {
    "match": _run_match,
    "chat": _run_chat,
    "analyze": _run_analyze,
}


def main(argv: List[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    assistant = build_assistant()
    try:
        asyncio.run(_COMMANDS[args.command](assistant, args))
    except InputError as exc:
        print(f"\n[hirelens] Invalid input: {exc}\n")
        raise SystemExit(2)


if __name__ == "__main__":
    main()
