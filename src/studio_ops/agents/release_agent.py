"""
Release Agent - release notes for one project version.

Generated prose is used only when at least one task is DONE; otherwise,
and on any generation failure, the notes come from a Markdown template.
"""

from typing import List, Optional

from pydantic import Field

from ..storage import Project, Task, TaskStatus, utcnow
from .base_agent import DecisionModel, GenerativeDecisionUnit

IN_PROGRESS_PREVIEW = 5


class ReleaseInput(DecisionModel):
    project: Project
    version: str
    tasks: List[Task] = Field(default_factory=list)


class ReleaseNotes(DecisionModel):
    release_notes: str
    version: str
    changelog: List[str]


def _done(tasks: List[Task]) -> List[Task]:
    return [t for t in tasks if t.status == TaskStatus.DONE]


class ReleaseAgent(GenerativeDecisionUnit[ReleaseInput, ReleaseNotes]):
    name = "Release Agent"

    def describe(self, data: ReleaseInput) -> str:
        return f"Generating release notes for {data.project.name} v{data.version}"

    def should_generate(self, data: ReleaseInput) -> Optional[str]:
        if not _done(data.tasks):
            return "no completed tasks to describe"
        return None

    def build_prompt(self, data: ReleaseInput) -> str:
        task_list = "\n".join(f"- {t.title}" for t in _done(data.tasks))
        return (
            "As a release manager, write release notes for this release:\n\n"
            f"Project: {data.project.name}\n"
            f"Version: {data.version}\n"
            f"Completed tasks:\n{task_list}\n\n"
            "Write user-friendly notes in a casual-professional tone, as Markdown with these sections:\n"
            "- Title and version\n"
            "- New Features\n"
            "- Improvements\n"
            "- Fixes (if any)\n\n"
            "Format: Markdown text"
        )

    def parse_response(self, text: str, data: ReleaseInput) -> ReleaseNotes:
        if not text.strip():
            raise ValueError("empty release notes")
        return ReleaseNotes(
            release_notes=text,
            version=data.version,
            changelog=[t.title for t in _done(data.tasks)],
        )

    def fallback(self, data: ReleaseInput) -> ReleaseNotes:
        done = _done(data.tasks)
        in_progress = [t for t in data.tasks if t.status == TaskStatus.IN_PROGRESS]

        lines = [
            f"# {data.project.name} v{data.version}",
            "",
            f"**Release date:** {utcnow().strftime('%Y-%m-%d')}",
            "",
        ]

        if done:
            lines += ["## 🎉 New Features", ""]
            for index, task in enumerate(done, start=1):
                lines.append(f"{index}. {task.title}")
                if task.description:
                    lines.append(f"   - {task.description}")
            lines.append("")

        if in_progress:
            lines += ["## 🚧 In Progress", "", "These features are coming soon:", ""]
            lines += [f"- {t.title}" for t in in_progress[:IN_PROGRESS_PREVIEW]]
            lines.append("")

        lines += [
            "## 📝 Notes",
            "",
            f"This release brings {len(done)} new features and improvements. "
            "Your feedback is very valuable to us!",
        ]

        return ReleaseNotes(
            release_notes="\n".join(lines) + "\n",
            version=data.version,
            changelog=[t.title for t in done],
        )
