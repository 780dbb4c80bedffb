"""
Assemble the walkthrough into a PDF: a cover page, then a text page and a
figure page per section, then a summary page.
"""

import os

from PIL import Image
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Image as RLImage
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer


def escape(line):
    """Escape XML-sensitive characters for reportlab paragraphs."""
    return line.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def _styles():
    styles = getSampleStyleSheet()
    code_style = ParagraphStyle(
        "CodeBlock",
        parent=styles["Normal"],
        fontName="Courier",
        fontSize=8.5,
        leading=11,
        spaceAfter=4,
        leftIndent=0,
    )
    title_style = ParagraphStyle(
        "SectionTitle",
        parent=styles["Heading1"],
        fontName="Helvetica-Bold",
        fontSize=14,
        leading=18,
        spaceAfter=12,
        textColor="#2171B5",
    )
    heading_style = ParagraphStyle(
        "WalkthroughTitle",
        parent=styles["Title"],
        fontName="Helvetica-Bold",
        fontSize=18,
        leading=22,
        spaceAfter=6,
    )
    subtitle_style = ParagraphStyle(
        "Subtitle",
        parent=styles["Normal"],
        fontName="Helvetica",
        fontSize=10,
        leading=13,
        spaceAfter=20,
        textColor="#555555",
    )
    return dict(normal=styles["Normal"], code=code_style, title=title_style,
                heading=heading_style, subtitle=subtitle_style)


def _text_block(story, text, style, blank=6):
    for line in text.strip("\n").split("\n"):
        # Leading spaces carry the alignment of tables and equations
        safe = escape(line).replace(" ", "&nbsp;")
        if line.strip() == "":
            story.append(Spacer(1, blank))
        else:
            story.append(Paragraph(safe, style))


def build_pdf(pdf_path, title, subtitle, intro_lines, section_contents,
              summary):
    """
    Write the report.

    Parameters
    ----------
    pdf_path : str
        Output file.
    title, subtitle : str
        Cover page heading.
    intro_lines : list of str
        Cover page body; "" inserts vertical space.
    section_contents : list of (str, str)
        (section text, figure path) pairs. The first text line is the
        section title. A figure path of None skips the figure page.
    summary : str
        Closing page text.

    Returns
    -------
    str : ``pdf_path``
    """
    doc = SimpleDocTemplate(pdf_path, pagesize=letter,
                            leftMargin=0.75*inch, rightMargin=0.75*inch,
                            topMargin=0.75*inch, bottomMargin=0.75*inch)
    st = _styles()
    story = []

    # --- Cover / intro page ---
    story.append(Paragraph(escape(title), st["heading"]))
    story.append(Paragraph(escape(subtitle), st["subtitle"]))
    story.append(Spacer(1, 12))
    for line in intro_lines:
        if line == "":
            story.append(Spacer(1, 6))
        else:
            story.append(Paragraph(escape(line), st["normal"]))
    story.append(PageBreak())

    # --- Interleaved text + figure pages ---
    page_w = letter[0] - 1.5*inch  # usable width
    max_h = letter[1] - 1.5*inch

    for sec_text, fig_path in section_contents:
        lines = sec_text.strip().split("\n")
        story.append(Paragraph(escape(lines[0]), st["title"]))
        _text_block(story, "\n".join(lines[1:]), st["code"])
        story.append(PageBreak())

        if fig_path is None:
            continue
        with Image.open(fig_path) as img:
            iw, ih = img.size
        aspect = ih / iw
        display_w = page_w
        display_h = display_w * aspect
        if display_h > max_h:
            display_h = max_h
            display_w = display_h / aspect
        story.append(RLImage(fig_path, width=display_w, height=display_h))
        story.append(PageBreak())

    # --- Summary page ---
    story.append(Paragraph("Summary", st["title"]))
    story.append(Spacer(1, 8))
    _text_block(story, summary, st["code"], blank=4)

    doc.build(story)
    return pdf_path


def output_dir(path=None):
    """Resolve and create the output directory."""
    path = path or os.path.join(os.getcwd(), "output")
    os.makedirs(path, exist_ok=True)
    return path
