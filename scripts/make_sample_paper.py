#!/usr/bin/env python
from __future__ import annotations

import argparse
from pathlib import Path

import fitz


QUESTIONS = [
    "1  Solve exactly the inequality 32x/(x-4) <= x+12. [3]\n   Hence solve 32|x|/(|x|-4) <= |x|+12. [2]",
    "2  The complex number z satisfies |z - 2 - 2i| = 1.\n   (i) Sketch the locus of z on an Argand diagram. [2]\n   (ii) Find the greatest value of arg z. [3]",
    "3  A bag contains 4 red and 6 blue balls. Two balls are drawn without replacement.\n   Find the probability that both balls are the same colour. [3]",
    "4  Find the Maclaurin series of ln(1 + sin x) up to and including the term in x^3. [4]",
    "5  The lines l1: r = (1, 2, 0) + s(1, 0, 1) and l2: r = (0, 1, 3) + t(2, 1, -1).\n   Find the shortest distance between l1 and l2. [4]",
]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample exam paper PDF for import testing")
    parser.add_argument("--output", required=True, help="Output file path (.pdf)")
    parser.add_argument("--school", default="Raffles Junior College", help="School name printed on the cover")
    parser.add_argument("--year", type=int, default=2024, help="Exam year")
    parser.add_argument("--pages", type=int, default=2, help="Number of pages to spread the questions over")
    args = parser.parse_args()

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)

    doc = fitz.open()
    per_page = max(1, -(-len(QUESTIONS) // max(1, args.pages)))
    for page_index in range(max(1, args.pages)):
        page = doc.new_page()
        lines = [f"{args.school} {args.year} H2 Mathematics Paper 1", ""] if page_index == 0 else []
        lines.extend(QUESTIONS[page_index * per_page : (page_index + 1) * per_page])
        page.insert_text((56, 72), "\n\n".join(lines), fontsize=10)
    doc.set_metadata({"title": f"{args.school} {args.year} Prelim", "author": args.school})
    doc.save(output)
    doc.close()

    print(f"Sample exam paper generated: {output}")


if __name__ == "__main__":
    main()
