"""
Feature permission grids for the admin and center-staff panels.

Both grids render from stored state only: a missing row shows as enabled
(default-allow), and a failed toggle simply re-renders the same state.
"""

from typing import Iterable, List, Mapping, Optional

from access_control.domain import Center, FlagSet, Teacher
from access_control.features import (
    CENTER_FEATURE_LABELS,
    TEACHER_FEATURE_LABELS,
    CenterFeature,
    TeacherFeature,
)

from .base import Component


class _ToggleCell(Component):
    def __init__(self, *, post_url: str, target: str, key_name: str, key_value: str, feature: str, label: str, enabled: bool):
        self.post_url = post_url
        self.target = target
        self.key_name = key_name
        self.key_value = key_value
        self.feature = feature
        self.label = label
        self.enabled = enabled

    def render(self) -> str:
        new_value = "false" if self.enabled else "true"
        vals = '{"%s": "%s", "feature_name": "%s", "is_enabled": "%s"}' % (
            self.key_name,
            self.escape(self.key_value),
            self.escape(self.feature),
            new_value,
        )
        attrs = self.attributes(
            type="button",
            class_=self.classes("toggle", on=self.enabled, off=not self.enabled),
            role="switch",
            aria_checked="true" if self.enabled else "false",
            aria_label=f"{self.label}: {'enabled' if self.enabled else 'disabled'}",
            hx_post=self.post_url,
            hx_target=self.target,
            hx_swap="outerHTML",
            data_feature=self.feature,
        )
        # hx-vals holds JSON, so the attribute is single-quoted.
        state = "On" if self.enabled else "Off"
        return f"<td><button {attrs} hx-vals='{vals}'>{state}</button></td>"


class CenterFeatureMatrix(Component):
    """Centers x center features. Toggling posts to the admin panel route."""

    TARGET_ID = "center-feature-matrix"

    def __init__(self, centers: Iterable[Center], flags_by_center: Mapping[str, FlagSet], *, notice: Optional[str] = None):
        self.centers: List[Center] = list(centers)
        self.flags_by_center = flags_by_center
        self.notice = notice

    def render(self) -> str:
        notice = f'<p class="text-muted">{self.escape(self.notice)}</p>' if self.notice else ""
        if not self.centers:
            body = notice or '<p class="text-muted">No centers yet.</p>'
            return f'<section class="card" id="{self.TARGET_ID}">{body}</section>'
        header = "".join(f"<th scope=\"col\">{self.escape(CENTER_FEATURE_LABELS[f])}</th>" for f in CenterFeature)
        rows = []
        for center in self.centers:
            flags = self.flags_by_center.get(center.id) or FlagSet()
            cells = "".join(
                _ToggleCell(
                    post_url="/admin/feature-permissions/toggle",
                    target=f"#{self.TARGET_ID}",
                    key_name="center_id",
                    key_value=center.id,
                    feature=feature.value,
                    label=CENTER_FEATURE_LABELS[feature],
                    enabled=flags.is_enabled(feature.value),
                ).render()
                for feature in CenterFeature
            )
            rows.append(f'<tr data-center-id="{self.escape(center.id)}"><th scope="row">{self.escape(center.name)}</th>{cells}</tr>')
        return f"""
<section class="card" id="{self.TARGET_ID}">
    {notice}
    <div class="table-scroll">
        <table class="feature-matrix">
            <thead><tr><th scope="col">Center</th>{header}</tr></thead>
            <tbody>{''.join(rows)}</tbody>
        </table>
    </div>
</section>"""


class TeacherFeatureList(Component):
    """One teacher's features as a list of toggles for center staff."""

    TARGET_ID = "teacher-feature-list"

    def __init__(self, teacher: Teacher, flags: FlagSet):
        self.teacher = teacher
        self.flags = flags

    def render(self) -> str:
        rows = []
        for feature in TeacherFeature:
            label = TEACHER_FEATURE_LABELS[feature]
            cell = _ToggleCell(
                post_url=f"/teachers/{self.teacher.id}/features/toggle",
                target=f"#{self.TARGET_ID}",
                key_name="teacher_id",
                key_value=self.teacher.id,
                feature=feature.value,
                label=label,
                enabled=self.flags.is_enabled(feature.value),
            ).render()
            rows.append(f"<tr><th scope=\"row\">{self.escape(label)}</th>{cell}</tr>")
        return f"""
<section class="card" id="{self.TARGET_ID}">
    <h2>{self.escape(self.teacher.name)}</h2>
    <table class="feature-list"><tbody>{''.join(rows)}</tbody></table>
</section>"""


class TeacherTable(Component):
    """Teachers of a center with links to their feature panels."""

    def __init__(self, teachers: Iterable[Teacher]):
        self.teachers = list(teachers)

    def render(self) -> str:
        if not self.teachers:
            return '<section class="card"><p class="text-muted">No teachers yet.</p></section>'
        items = "".join(
            f'<li><a href="/teachers/{self.escape(t.id)}/features" hx-get="/teachers/{self.escape(t.id)}/features" '
            f'hx-target="#main-content" hx-push-url="true">{self.escape(t.name)}</a></li>'
            for t in self.teachers
        )
        return f'<section class="card"><ul class="teacher-list">{items}</ul></section>'
