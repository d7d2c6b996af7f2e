"""PDF and CSV exports of projects and requirements.

PDFs are laid out with reportlab platypus into an in-memory buffer; the
endpoints stream the bytes back as attachments.
"""
import csv
import io
import re
from datetime import datetime
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer
from sqlmodel import Session

from reqhub.models.project import Project
from reqhub.models.requirement import Requirement
from reqhub.models.user import User
from reqhub.services.persistence import get_or_404, load_users
from reqhub.services.requirement_service import comments_of, list_requirements

BRAND = "RequirementsHub"
CSV_HEADERS = [
    "ID",
    "Title",
    "Description",
    "Category",
    "Priority",
    "Status",
    "Created By",
    "Assigned To",
    "Created At",
]
CSV_DESCRIPTION_LIMIT = 200
SUMMARY_DESCRIPTION_LIMIT = 150

STATUS_COLORS = {
    "draft": "#6B7280",
    "pending": "#F59E0B",
    "approved": "#10B981",
    "in_progress": "#3B82F6",
    "completed": "#059669",
    "rejected": "#EF4444",
}


def safe_filename(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", name, flags=re.I)


def _label(value: Optional[str]) -> str:
    return (value or "").replace("_", " ")


def _date(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d") if value else "N/A"


class ReportBuilder:
    """Collects flowables with the shared report styles and renders them to bytes."""

    def __init__(self, subtitle: str, caption: Optional[str] = None):
        self.styles = getSampleStyleSheet()
        self._setup_styles()
        self.story: List = []
        self.paragraph(BRAND, "Brand")
        self.paragraph(subtitle, "ReportTitle")
        if caption:
            self.paragraph(caption, "ReportCaption")
        self.space(0.4)

    def _setup_styles(self):
        self.styles.add(ParagraphStyle(
            name="Brand",
            parent=self.styles["Title"],
            fontSize=24,
            textColor=HexColor("#4F46E5"),
            alignment=TA_CENTER,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportTitle",
            parent=self.styles["Normal"],
            fontSize=16,
            leading=20,
            textColor=HexColor("#333333"),
            alignment=TA_CENTER,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportCaption",
            parent=self.styles["Normal"],
            fontSize=11,
            textColor=HexColor("#666666"),
            alignment=TA_CENTER,
        ))
        self.styles.add(ParagraphStyle(
            name="Section",
            parent=self.styles["Heading2"],
            textColor=HexColor("#4F46E5"),
        ))
        self.styles.add(ParagraphStyle(
            name="Muted",
            parent=self.styles["Normal"],
            fontSize=10,
            textColor=HexColor("#666666"),
        ))
        self.styles.add(ParagraphStyle(
            name="Indented",
            parent=self.styles["Normal"],
            fontSize=10,
            leftIndent=20,
            textColor=HexColor("#666666"),
        ))
        self.styles.add(ParagraphStyle(
            name="Footer",
            parent=self.styles["Normal"],
            fontSize=9,
            textColor=HexColor("#999999"),
            alignment=TA_CENTER,
        ))

    def paragraph(self, text: str, style: str = "Normal", color: Optional[str] = None):
        body = escape(text or "")
        if color:
            body = f'<font color="{color}">{body}</font>'
        self.story.append(Paragraph(body, self.styles[style]))

    def space(self, inches: float = 0.2):
        self.story.append(Spacer(1, inches * inch))

    def render(self) -> bytes:
        self.space(0.4)
        self.paragraph(f"Generated on {datetime.utcnow().strftime('%Y-%m-%d %H:%M')} UTC by {BRAND}", "Footer")
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=50,
            rightMargin=50,
            topMargin=50,
            bottomMargin=50,
            title=BRAND,
        )
        doc.build(self.story)
        return buffer.getvalue()


def project_pdf(session: Session, project_id: int):
    """Returns the project report and its download file name."""
    project = get_or_404(session, Project, project_id, "Project")
    requirements = list_requirements(session, project=project.id, oldest_first=True)

    report = ReportBuilder("Project Report")
    report.paragraph(project.name, "Heading1")
    report.paragraph(project.description, "Muted")
    report.space()
    report.paragraph(f"Status: {_label(project.status).upper()}")
    report.paragraph(f"Priority: {(project.priority or '').upper()}")
    report.paragraph(f"Start Date: {_date(project.start_date)}")
    if project.deadline:
        report.paragraph(f"Deadline: {_date(project.deadline)}")
    report.paragraph(f"Created: {_date(project.created_at)}")
    report.space(0.3)

    report.paragraph("Requirements", "Section")
    if not requirements:
        report.paragraph("No requirements found for this project.", "Muted")
    for index, req in enumerate(requirements, start=1):
        report.paragraph(f"{index}. {req.title}", "Heading3")
        report.paragraph(req.description, "Indented")
        report.paragraph(
            f"Category: {req.category} | Priority: {req.priority} | Status: {req.status}", "Indented"
        )
        report.space(0.1)
    return report.render(), f"{safe_filename(project.name)}_report.pdf"


def status_counts(requirements: List[Requirement]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for req in requirements:
        counts[req.status] = counts.get(req.status, 0) + 1
    return counts


def requirements_pdf(
    session: Session,
    project: Optional[int] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    category: Optional[str] = None,
) -> bytes:
    requirements = list_requirements(session, project=project, status=status, category=category, priority=priority)
    project_name = "All Projects"
    if project is not None:
        record = session.get(Project, project)
        if record:
            project_name = record.name

    report = ReportBuilder("Requirements Report", project_name)
    report.paragraph("Summary", "Section")
    report.paragraph(f"Total Requirements: {len(requirements)}")
    for key, count in status_counts(requirements).items():
        report.paragraph(f"{_label(key)}: {count}", "Indented")
    report.space(0.3)

    report.paragraph("Requirements Details", "Section")
    for index, req in enumerate(requirements, start=1):
        description = req.description or ""
        if len(description) > SUMMARY_DESCRIPTION_LIMIT:
            description = description[:SUMMARY_DESCRIPTION_LIMIT] + "..."
        report.paragraph(f"{index}. {req.title}", "Heading3")
        report.paragraph(description, "Muted")
        report.paragraph(
            f"Status: {req.status} | Category: {req.category} | Priority: {req.priority}",
            "Muted",
            color=STATUS_COLORS.get(req.status),
        )
        report.space(0.15)
    return report.render()


def requirement_pdf(session: Session, requirement_id: int):
    requirement = get_or_404(session, Requirement, requirement_id, "Requirement")
    project = session.get(Project, requirement.project_id)
    comments = comments_of(session, requirement.id)
    authors = load_users(session, (c.user_id for c in comments))

    report = ReportBuilder("Requirement Document")
    report.paragraph(requirement.title, "Heading1")
    report.paragraph(f"Project: {project.name if project else 'N/A'}", "Muted")
    report.paragraph(f"Category: {requirement.category}", "Muted")
    report.paragraph(f"Priority: {requirement.priority}", "Muted")
    report.paragraph(f"Status: {requirement.status}", "Muted")
    report.paragraph(f"Created: {_date(requirement.created_at)}", "Muted")
    report.paragraph(f"Last Updated: {_date(requirement.updated_at)}", "Muted")
    report.space(0.3)

    report.paragraph("Description", "Section")
    report.paragraph(requirement.description)

    if requirement.acceptance_criteria:
        report.paragraph("Acceptance Criteria", "Section")
        for index, criterion in enumerate(requirement.acceptance_criteria, start=1):
            report.paragraph(f"{index}. {criterion}")

    if comments:
        report.paragraph("Comments", "Section")
        for comment in comments:
            author = authors.get(comment.user_id)
            stamp = comment.created_at.strftime("%Y-%m-%d %H:%M")
            report.paragraph(f"{author.name if author else 'Unknown'} - {stamp}", "Muted")
            report.paragraph(comment.text)
            report.space(0.1)
    return report.render(), f"{safe_filename(requirement.title)}.pdf"


def project_csv(session: Session, project_id: int):
    project = get_or_404(session, Project, project_id, "Project")
    requirements = list_requirements(session, project=project.id, oldest_first=True)
    people: Dict[int, User] = load_users(
        session, [uid for req in requirements for uid in (req.created_by_id, req.assigned_to_id)]
    )

    def name_of(user_id):
        return people[user_id].name if user_id in people else "N/A"

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for req in requirements:
        writer.writerow([
            req.id,
            req.title,
            (req.description or "")[:CSV_DESCRIPTION_LIMIT],
            req.category,
            req.priority,
            req.status,
            name_of(req.created_by_id),
            name_of(req.assigned_to_id),
            req.created_at.isoformat(),
        ])
    return buffer.getvalue(), f"{safe_filename(project.name)}_requirements.csv"
