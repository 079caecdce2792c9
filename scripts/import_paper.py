#!/usr/bin/env python
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import httpx

from exam_import.client.poller import ImportStatusPoller


def main() -> int:
    parser = argparse.ArgumentParser(description="Upload an exam paper PDF and wait until it is ready for review")
    parser.add_argument("pdf", help="Path to the exam paper PDF")
    parser.add_argument("--base-url", default="http://localhost:8000", help="Import API base URL")
    parser.add_argument("--school", required=True, help="School name")
    parser.add_argument("--year", required=True, type=int, help="Exam year")
    parser.add_argument(
        "--exam-type",
        required=True,
        choices=["midyear", "promo", "prelim", "topical"],
        help="Exam type",
    )
    parser.add_argument("--paper-number", type=int, default=None, help="Paper number")
    parser.add_argument("--commit", action="store_true", help="Save every extracted item without editing")
    args = parser.parse_args()

    path = Path(args.pdf)
    form = {"school": args.school, "year": str(args.year), "examType": args.exam_type}
    if args.paper_number is not None:
        form["paperNumber"] = str(args.paper_number)

    with httpx.Client(base_url=args.base_url, timeout=900.0) as client:
        with path.open("rb") as fp:
            response = client.post("/api/import/upload", data=form, files={"file": (path.name, fp, "application/pdf")})
        body = response.json()
        import_id = body.get("importId")
        if not import_id:
            print(f"Upload rejected: {body.get('error')}", file=sys.stderr)
            return 1

        def report(status) -> None:
            print(f"[{import_id}] {status.status} {status.progress or ''}")

        with ImportStatusPoller(import_id, base_url=args.base_url, http_client=client, on_status=report) as poller:
            outcome = poller.run()
        if outcome.state != "ready":
            print(f"Import did not reach review: {outcome.error or outcome.state}", file=sys.stderr)
            return 1
        print(f"{outcome.questions_found} questions, {outcome.lessons_found} lessons found")

        if args.commit:
            content = client.post(f"/api/import/status/{import_id}", json={"action": "get_content"}).json()
            saved = client.post(
                "/api/import/save",
                json={
                    "importId": import_id,
                    "questions": content["questions"],
                    "lessons": content["lessons"],
                    "metadata": content["metadata"],
                },
            ).json()
            print(f"Saved {saved['savedQuestions']} questions and {saved['savedLessons']} lessons")
    return 0


if __name__ == "__main__":
    sys.exit(main())
