#!/usr/bin/env python3
"""
Convert a question bank PDF (and optional answer key PDF) to CSV.

Usage:
  python scripts/import_question_bank.py questions.pdf [--answers key.pdf] [--out out.csv]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import pandas as pd

ROOT_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT_DIR))

from app.services.pdf_text import PdfTextExtractionError, extract_text_from_pdf  # noqa: E402
from app.services.question_bank_parser import (  # noqa: E402
    NoQuestionsDetected,
    import_question_bank,
)


def questions_to_frame(questions: list[dict]) -> pd.DataFrame:
    """One row per question with ``Option 1..N`` columns sized to the widest question."""
    max_options = max((len(q["options"]) for q in questions), default=0)
    rows = []
    for number, q in enumerate(questions, start=1):
        row = {"ID": number, "Question": q["text"]}
        for i in range(1, max_options + 1):
            row[f"Option {i}"] = q["options"][i - 1] if i <= len(q["options"]) else ""
        row["CorrectAnswer"] = q["correctAnswer"]
        row["Points"] = q["points"]
        rows.append(row)
    return pd.DataFrame(rows)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import a question bank PDF to CSV.")
    parser.add_argument("pdf", help="Question bank PDF.")
    parser.add_argument("--answers", help="Answer key PDF.")
    parser.add_argument("--out", help="Output CSV path (defaults to <pdf>.csv).")
    args = parser.parse_args()

    pdf_path = Path(args.pdf)
    output_csv = Path(args.out) if args.out else pdf_path.with_suffix(".csv")

    try:
        text = extract_text_from_pdf(pdf_path)
    except PdfTextExtractionError as exc:
        print(f"Failed to parse PDF file content: {exc}", file=sys.stderr)
        return 1

    answers_text = None
    if args.answers:
        try:
            answers_text = extract_text_from_pdf(Path(args.answers))
        except PdfTextExtractionError as exc:
            print(f"Warning: answer key ignored ({exc})", file=sys.stderr)

    try:
        questions = import_question_bank(text, answers_text)
    except NoQuestionsDetected as exc:
        print(exc.message, file=sys.stderr)
        return 1

    df = questions_to_frame(questions)
    output_csv.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_csv, index=False, encoding="utf-8-sig")
    answered = int((df["CorrectAnswer"] != "").sum())
    print(f"Converted: {output_csv} ({len(df)} questions, {answered} with answers)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
