from __future__ import annotations

from typing import Any, Dict, Sequence

from extraction.normalizers import normalize_date
from extraction.page import PageSnapshot
from extractors.base import EntityExtractor
from extractors.registry import register


class TaskExtractor(EntityExtractor):
    object_type = "task"
    header = "Task"
    header_captions = (
        "Mark Complete",
        "Edit Comments",
        "Change Date",
        "Create Follow-Up Task",
        "Follow",
        "Edit",
        "Delete",
    )
    reserved_labels = (
        "Subject",
        "Assigned To",
        "Status",
        "Due Date",
        "Priority",
        "Name",
        "Related To",
        "Created By",
        "Last Modified By",
        "Comments",
        "Mark Complete",
        "Edit Comments",
        "Change Date",
        "Create Follow-Up Task",
        "Details",
        "Related",
        "Follow",
        "Edit",
        "Delete",
    )

    def extract_fields(self, snapshot: PageSnapshot, lines: Sequence[str]) -> Dict[str, Any]:
        return {
            "subject": self.display_name(snapshot, lines),
            "assignedTo": self.field(lines, "Assigned To"),
            "status": self.field(lines, "Status"),
            "dueDate": normalize_date(self.field(lines, "Due Date")),
            "priority": self.field(lines, "Priority"),
            "name": self.field(lines, "Name"),
            "relatedTo": self.field(lines, "Related To"),
        }


def _register():
    register(TaskExtractor.object_type, TaskExtractor)


_register()
