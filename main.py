from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path
from dotenv import load_dotenv
from ats_optimizer.config import get_secret
from ats_optimizer.errors import AtsOptimizerError
from ats_optimizer.graph.workflow import run_analysis, run_optimization
from ats_optimizer.llm_provider import normalize_provider, stage_llms
from ats_optimizer.state import RunRecord
from ats_optimizer.utils import load_resume, read_text_file


def append_record(path: Path):
    def sink(record: RunRecord) -> None:
        with path.open("a", encoding="utf-8") as fh:
            fh.write(record.model_dump_json() + "\n")

    return sink


def main():
    load_dotenv()  # load .env if exists
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    parser = argparse.ArgumentParser(description="ATS resume optimizer (Groq/Gemini/Mistral)")
    parser.add_argument("--resume", required=True, help="Path to resume file (.pdf, .txt or .md)")
    parser.add_argument("--jd", required=True, help="Path to a job description text file")
    parser.add_argument("--out", default="resume.yaml", help="Output RenderCV YAML path")
    parser.add_argument("--provider", default=get_secret("LLM_PROVIDER") or "auto",
                        choices=["auto", "groq", "gemini", "mistral"], help="LLM provider selection")
    parser.add_argument("--analyze-only", action="store_true", help="Stop after the initial ATS score")
    parser.add_argument("--record", help="Append the run record as a JSON line to this file")
    args = parser.parse_args()

    provider = normalize_provider(args.provider)
    try:
        llms = stage_llms(provider)
        resume_text = load_resume(args.resume)
        jd_text = read_text_file(args.jd)
        analysis = run_analysis(resume_text, jd_text, llms, provider=provider)
    except (AtsOptimizerError, RuntimeError, ValueError, OSError) as e:
        print(f"[ERR] {e}")
        sys.exit(1)

    initial = analysis.initial_ats_data
    print(f"[OK] Initial ATS score: {initial.score}")
    if initial.missing_keywords:
        print("     Missing keywords: " + ", ".join(initial.missing_keywords))
    if args.analyze_only:
        return

    sink = append_record(Path(args.record)) if args.record else None
    try:
        final = run_optimization(analysis.resume_json, initial, jd_text, llms, sink=sink, provider=provider)
    except AtsOptimizerError as e:
        print(f"[ERR] {e}")
        sys.exit(1)

    degraded = analysis.degraded + final.degraded
    if degraded:
        print("[WARN] Pipeline completed with degraded steps:")
        for notice in degraded:
            print(" -", notice)

    print(f"[OK] Final ATS score: {final.final_ats_data.score} "
          f"(+{final.final_ats_data.score - initial.score})")
    if final.formatted_output:
        out_path = Path(args.out)
        out_path.write_text(final.formatted_output, encoding="utf-8")
        print(f"[OK] RenderCV YAML written to: {out_path.resolve()}")
    else:
        print("[ERR] No formatted output produced.")


if __name__ == "__main__":
    main()
