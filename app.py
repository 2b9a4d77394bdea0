from __future__ import annotations
import json
import re
import unicodedata
import streamlit as st
from dotenv import load_dotenv
from ats_optimizer.config import get_secret
from ats_optimizer.errors import AtsOptimizerError
from ats_optimizer.graph.workflow import run_analysis, run_optimization
from ats_optimizer.llm_provider import normalize_provider, stage_llms
from ats_optimizer.utils import extract_text_with_links

PROVIDER_KEYS = {
    "groq": ["GROQ_API_KEY"],
    "gemini": ["GEMINI_API_KEY", "GOOGLE_API_KEY"],
    "mistral": ["MISTRAL_API_KEY"],
}


def slugify(value: str) -> str:
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9-]+", "-", value).strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower() or "resume"


def _missing_key(provider: str) -> str | None:
    if provider == "auto":
        names = [n for keys in PROVIDER_KEYS.values() for n in keys]
        return None if any(get_secret(n) for n in names) else "GROQ_API_KEY, GEMINI_API_KEY or MISTRAL_API_KEY"
    keys = PROVIDER_KEYS[provider]
    return None if any(get_secret(n) for n in keys) else " or ".join(keys)


def _keyword_line(label: str, keywords: list[str]) -> None:
    if keywords:
        st.markdown(f"**{label}:** " + " ".join(f"`{k}`" for k in keywords))


def main():
    load_dotenv()
    st.set_page_config(page_title="ATS Resume Optimizer", page_icon="📄", layout="centered")
    st.title("ATS Resume Optimizer")
    st.caption("Score a resume against a job description, then rewrite it to close the keyword gaps.")

    with st.sidebar:
        provider_label = st.selectbox("LLM Provider", options=["Auto", "Groq", "Gemini", "Mistral"], index=0)
        uploaded = st.file_uploader("Upload resume (.pdf)", type=["pdf"], accept_multiple_files=False)
        jd_text = st.text_area("Job description", height=240)
        analyze = st.button("Analyze")

    provider = normalize_provider(provider_label)
    session = st.session_state
    session.setdefault("records", [])

    if analyze:
        missing = _missing_key(provider)
        if missing:
            st.error(f"Missing {missing}. Add it to .env or Streamlit secrets.")
            return
        if not uploaded or not jd_text.strip():
            st.warning("Please upload a resume and paste the job description.")
            return
        try:
            with st.spinner("Parsing and scoring resume..."):
                resume_text = extract_text_with_links(uploaded.getvalue())
                analysis = run_analysis(resume_text, jd_text, stage_llms(provider), provider=provider)
        except (AtsOptimizerError, RuntimeError) as e:
            st.error(f"Pipeline error: {e}")
            return
        session["analysis"] = analysis
        session.pop("optimized", None)

    analysis = session.get("analysis")
    if analysis is None:
        return

    initial = analysis.initial_ats_data
    st.metric("Initial ATS score", initial.score)
    _keyword_line("Missing keywords", initial.missing_keywords)
    _keyword_line("Matched keywords", initial.matched_keywords)

    if st.button("Optimize resume"):
        try:
            with st.spinner("Optimizing resume..."):
                session["optimized"] = run_optimization(
                    analysis.resume_json, initial, analysis.raw_jd_text, stage_llms(provider),
                    sink=session["records"].append, provider=provider,
                )
        except AtsOptimizerError as e:
            st.error(f"Pipeline error: {e}")
            return

    final = session.get("optimized")
    if final is None:
        return

    degraded = analysis.degraded + final.degraded
    if degraded:
        st.warning("\n".join(degraded))

    st.metric("Final ATS score", final.final_ats_data.score,
              delta=final.final_ats_data.score - initial.score)
    with st.expander("Optimized resume (JSON)"):
        st.json(final.optimized_resume_json.to_wire())

    if final.formatted_output:
        st.code(final.formatted_output, language="yaml")
        name = final.optimized_resume_json.personal.name or "resume"
        st.download_button(
            label="Download RenderCV YAML",
            data=final.formatted_output.encode("utf-8"),
            file_name=f"{slugify(name)}-rendercv.yaml",
            mime="application/x-yaml",
        )
    else:
        st.error("No formatted output produced.")

    if session["records"]:
        with st.expander("Run history"):
            st.code("\n".join(json.dumps(r.model_dump()) for r in session["records"]), language="json")


if __name__ == "__main__":
    main()
