from __future__ import annotations
import json
import logging
from typing import Any, List, Tuple
import yaml
from langchain_core.messages import HumanMessage, SystemMessage
from ..errors import Degradation, MalformedGenerationError
from ..llm_provider import generate
from ..normalizer import extract_payload
from ..schemas import StructuredResume

RENDERCV_SHAPE = """cv:
  name: string
  location: string
  email: string
  phone: string
  social_networks:
    - network: string
      username: string
  sections:
    summary:
      - string
    experience:
      - company: string
        position: string
        location: string
        start_date: string
        end_date: string
        highlights:
          - string
    education:
      - institution: string
        area: string
        degree: string
        start_date: string
        end_date: string
        highlights:
          - string
    projects:
      - name: string
        url: string
        highlights:
          - string
    skills:
      - label: string
        details: string
    certifications:
      - bullet: string
    achievements:
      - bullet: string"""


def build_formatter_prompt(resume: StructuredResume) -> List[Any]:
    system = SystemMessage(content=(
        "You convert structured resume JSON into RenderCV YAML. Output ONLY YAML. "
        "No markdown, no comments, no explanations."
    ))
    human = HumanMessage(content=(
        "Rules:\n- Follow the RenderCV structure below.\n- Omit missing fields.\n\n"
        "Structure:\n" + RENDERCV_SHAPE
        + "\n\nInput ResumeJSON:\n" + json.dumps(resume.to_wire(), ensure_ascii=False)
    ))
    return [system, human]


def format_resume(resume: StructuredResume, llm: Any) -> Tuple[str, List[str]]:
    """Render the resume as RenderCV YAML. Best effort: unfenced output is used as-is."""
    content = generate(llm, build_formatter_prompt(resume))
    try:
        document = extract_payload(content, "yaml")
    except MalformedGenerationError:
        document = content.strip()

    try:
        loaded = yaml.safe_load(document)
    except yaml.YAMLError as e:
        logging.warning(f"Formatter output is not valid YAML, returning raw text: {e}")
        return document, [Degradation.FORMATTING.notice(f"invalid YAML: {e}")]
    if not isinstance(loaded, dict):
        logging.warning("Formatter output is not a YAML mapping, returning raw text")
        return document, [Degradation.FORMATTING.notice("output is not a YAML mapping")]
    return document, []
