#!/usr/bin/env python3
"""
Replay captured model replies through the repair pipeline.

Prints the text after every stage that changed it, then the final record or
diagnostic. Use it to tune the repair stages against failures logged in
production.

Usage:
    python scripts/debug_repair.py reply1.txt reply2.txt
    python scripts/debug_repair.py --text '{storeName: Walmart, totalPaid: "12,50"}'
    python scripts/debug_repair.py --fallback failing_reply.txt
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import argparse
import json
from pathlib import Path

from ocr_enhancer.exceptions import ExtractionError
from ocr_enhancer.services.extractor import extract_candidate
from ocr_enhancer.services.normalizer import normalize_fields
from ocr_enhancer.services.pipeline import parse_model_output
from ocr_enhancer.services.repair import FALLBACK_STAGES, REPAIR_STAGES


def trace(raw_text: str, use_fallback: bool) -> bool:
    """Print the stage-by-stage trace for one reply. Returns True on success."""
    try:
        text = extract_candidate(raw_text)
    except ExtractionError:
        print("✗ No JSON object found in reply")
        text = None

    if text is not None:
        print("\nCANDIDATE:")
        print("-" * 60)
        print(text)

        for stage in REPAIR_STAGES:
            repaired = stage.apply(text)
            if repaired != text:
                print(f"\n[{stage.name}]")
                print(repaired)
            text = repaired

        normalized = normalize_fields(text)
        if normalized != text:
            print("\n[field_normalizer]")
            print(normalized)

    fallback = FALLBACK_STAGES if use_fallback else ()
    result = parse_model_output(raw_text, fallback_stages=fallback)

    print("\n" + "=" * 60)
    if result.ok:
        print(f"✓ PARSED{' (fallback applied)' if result.fallback_applied else ''}")
        print(json.dumps(result.record.model_dump(by_alias=True), indent=2))
    else:
        print(f"✗ {result.error.error}: {result.error.message}")
    return result.ok


def main():
    parser = argparse.ArgumentParser(description="Trace the receipt repair pipeline")
    parser.add_argument('files', nargs='*', help='Files holding raw model replies')
    parser.add_argument('--text', help='Raw reply passed inline')
    parser.add_argument('--fallback', action='store_true', help='Enable the decimal truncation retry')
    args = parser.parse_args()

    replies = []
    if args.text:
        replies.append(('<inline>', args.text))
    for name in args.files:
        replies.append((name, Path(name).read_text(encoding='utf-8')))

    if not replies:
        parser.error("Provide at least one file or --text")

    passed = 0
    for name, raw_text in replies:
        print("\n" + "=" * 60)
        print(f"REPLY: {name}")
        print("=" * 60)
        if trace(raw_text, args.fallback):
            passed += 1

    print(f"\n{passed}/{len(replies)} replies parsed")
    sys.exit(0 if passed == len(replies) else 1)


if __name__ == '__main__':
    main()
