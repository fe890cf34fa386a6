#!/usr/bin/env python
from __future__ import annotations

import argparse
import json
import random
from pathlib import Path


FIRST_NAMES = ["Ana", "Bruno", "Carla", "Diego", "Elena", "Fabio", "Gala", "Hugo", "Irene", "Jorge"]
LANGUAGES = ["Kotlin", "Java", "Python", "Rust", "Go", "Swift", "TypeScript", "C#"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a synthetic source file for decode benchmarks")
    parser.add_argument("--count", type=int, default=1000, help="number of records")
    parser.add_argument("--output", required=True, help="output file path (.json)")
    parser.add_argument("--seed", type=int, default=7, help="random seed")
    parser.add_argument("--extra-fields", action="store_true", help="add unknown fields the decoder must ignore")
    args = parser.parse_args()

    rng = random.Random(args.seed)
    records = []
    for index in range(args.count):
        record = {
            "name": rng.choice(FIRST_NAMES),
            "language": rng.choice(LANGUAGES),
            "id": str(index + 1),
            "bio": " ".join(rng.choice(["fast", "typed", "async", "parallel", "json"]) for _ in range(12)),
            "version": round(rng.uniform(0.1, 20.0), 2),
        }
        if args.extra_fields:
            record["team"] = rng.choice(["core", "platform", "mobile"])
        records.append(record)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")

    print(f"Wrote {len(records)} records to {output}")


if __name__ == "__main__":
    main()
