import json

from langchain_core.messages import AIMessage


class FakeLLM:
    """Chat model stand-in returning scripted responses; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def invoke(self, messages):
        self.calls.append(messages)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return AIMessage(content=item)

    def prompt_text(self, index=-1):
        return "\n".join(m.content for m in self.calls[index])


def fenced(data, lang="json"):
    body = data if isinstance(data, str) else json.dumps(data)
    return f"Here you go:\n```{lang}\n{body}\n```\nLet me know if you need anything else."


RESUME_DATA = {
    "personal": {
        "name": "Asha Verma",
        "email": "asha@example.com",
        "links": [{"label": "GitHub", "url": "https://github.com/asha"}],
    },
    "summary": "Backend developer.",
    "experience": [
        {
            "company": "Acme Corp",
            "role": "Software Engineer",
            "location": "Pune",
            "startDate": "2023",
            "endDate": "Present",
            "bullets": ["Built REST APIs with Node.js and Express"],
        }
    ],
    "education": [
        {"institution": "ABC University", "degree": "B.Tech Computer Science", "startDate": "2019", "endDate": "2023"}
    ],
    "projects": [
        {"name": "Chat App", "link": "", "bullets": ["Realtime chat using Socket.io"]},
    ],
    "skills": [{"category": "Languages", "items": ["JavaScript", "Python"]}],
    "certifications": [],
    "achievements": ["Hackathon winner"],
}

RESUME_TEXT = (
    "Asha Verma asha@example.com GitHub [Link: https://github.com/asha]\n"
    "Acme Corp Software Engineer Pune 2023-Present\n"
    "ABC University, B.Tech Computer Science, 2019-2023\n"
    "Chat App - Realtime chat using Socket.io\n"
)

JD_TEXT = "We need a full-stack engineer with React, Node.js, Docker and Kubernetes experience."
