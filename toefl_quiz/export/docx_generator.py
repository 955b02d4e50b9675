"""DOCX document generator for quiz export."""

import logging
from datetime import datetime
from pathlib import Path
from string import ascii_uppercase

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from toefl_quiz.models.quiz import Question, QuestionType, Quiz

logger = logging.getLogger(__name__)

HEADING_COLOR = RGBColor(0, 51, 102)
CORRECT_COLOR = RGBColor(0, 128, 0)
MUTED_COLOR = RGBColor(96, 96, 96)


def ensure_output_directory(output_dir: str = "output") -> Path:
    """
    Ensure the output directory exists.

    Args:
        output_dir: Directory path to create

    Returns:
        Path object for the output directory
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path


def generate_timestamped_filename(base_name: str, extension: str = "docx") -> str:
    """
    Generate a filename with timestamp.

    Args:
        base_name: Base name for the file
        extension: File extension (without dot)

    Returns:
        Filename with timestamp
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    # Clean the base name to remove any path components
    base_name = Path(base_name).name
    return f"{base_name}_{timestamp}.{extension}"


def choice_label(index: int) -> str:
    """Letter label for a choice index (0 -> A)."""
    return ascii_uppercase[index]


def format_correct_answer(question: Question) -> str:
    """Correct choice letters joined with commas, e.g. "A, C, F"."""
    return ", ".join(choice_label(i) for i in sorted(question.correct_choice_indices))


def export_to_docx(
    quiz: Quiz,
    output_path: str,
    include_answers: bool = False,
    use_output_dir: bool = True,
    output_dir: str = "output",
    article: str | None = None,
) -> str:
    """
    Export quiz to a formatted DOCX file.

    Args:
        quiz: Quiz object to export
        output_path: Path where the DOCX file should be saved
        include_answers: If True, marks correct choices and adds rationales
        use_output_dir: If True, saves to output directory with timestamp
        output_dir: Directory to save files in
        article: Reading passage to print before the questions

    Returns:
        Path to the created DOCX file
    """
    if use_output_dir:
        output_dir_path = ensure_output_directory(output_dir)
        filename = generate_timestamped_filename(Path(output_path).stem)
        output_path = str(output_dir_path / filename)

    doc = Document()
    setup_document_styles(doc)

    title = doc.add_heading(quiz.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    info_para = doc.add_paragraph()
    info_para.add_run(f"Total Questions: {quiz.total_questions}").bold = True
    info_para.alignment = WD_ALIGN_PARAGRAPH.CENTER

    date_para = doc.add_paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    date_para.alignment = WD_ALIGN_PARAGRAPH.CENTER
    date_para.runs[0].font.size = Pt(9)
    date_para.runs[0].font.color.rgb = MUTED_COLOR

    if article:
        doc.add_page_break()
        doc.add_heading("Reading Passage", level=1).runs[0].font.color.rgb = HEADING_COLOR
        for paragraph in article.strip().split("\n\n"):
            doc.add_paragraph(paragraph.strip())

    doc.add_page_break()

    for question in quiz.questions:
        add_question_to_document(doc, question, quiz, include_answers)

    if include_answers:
        add_answer_key(doc, quiz)

    doc.save(output_path)
    logger.info("Exported quiz %r to %s", quiz.title, output_path)

    return output_path


def setup_document_styles(doc: Document) -> None:
    """
    Set up document-wide styles.

    Args:
        doc: Document to configure
    """
    font = doc.styles["Normal"].font
    font.name = "Calibri"
    font.size = Pt(11)

    for section in doc.sections:
        section.top_margin = Inches(1)
        section.bottom_margin = Inches(1)
        section.left_margin = Inches(1)
        section.right_margin = Inches(1)


def add_question_to_document(
    doc: Document, question: Question, quiz: Quiz, include_answers: bool = False
) -> None:
    """
    Add a single question to the document.

    Args:
        doc: Document to add to
        question: Question to render
        quiz: Quiz the question belongs to (for the summary sentence)
        include_answers: If True, marks correct choices and adds the rationale
    """
    q_para = doc.add_paragraph()
    q_run = q_para.add_run(f"Q{question.question_number}. ")
    q_run.bold = True
    q_run.font.size = Pt(12)
    q_para.add_run(question.question_text)

    type_run = doc.add_paragraph().add_run(f"  {question.question_type.value}")
    type_run.font.size = Pt(9)
    type_run.italic = True
    type_run.font.color.rgb = MUTED_COLOR

    if question.highlighted_text:
        highlight_para = doc.add_paragraph()
        highlight_para.paragraph_format.left_indent = Inches(0.5)
        highlight_para.add_run(question.highlighted_text).bold = True

    if question.question_type == QuestionType.INSERT_TEXT:
        sentence_para = doc.add_paragraph()
        sentence_para.paragraph_format.left_indent = Inches(0.5)
        sentence_para.add_run("Sentence to insert: ").bold = True
        sentence_para.add_run(question.sentence_to_insert).italic = True

        passage_para = doc.add_paragraph(question.paragraph_for_insertion)
        passage_para.paragraph_format.left_indent = Inches(0.5)

    if question.question_type == QuestionType.PROSE_SUMMARY:
        intro_para = doc.add_paragraph()
        intro_para.paragraph_format.left_indent = Inches(0.5)
        intro_para.add_run(quiz.summary_introductory_sentence).bold = True
        doc.add_paragraph("Select THREE answer choices.").runs[0].italic = True

    for i, choice in enumerate(question.choices):
        opt_para = doc.add_paragraph(f"   {choice_label(i)}. {choice.text}")
        opt_para.paragraph_format.left_indent = Inches(0.5)

        if include_answers and choice.is_correct:
            opt_para.runs[0].bold = True
            opt_para.runs[0].font.color.rgb = CORRECT_COLOR
            opt_para.add_run(" ✓").font.color.rgb = CORRECT_COLOR

    if include_answers:
        exp_para = doc.add_paragraph()
        exp_para.paragraph_format.left_indent = Inches(0.5)
        exp_run = exp_para.add_run(f"Rationale: {question.rationale}")
        exp_run.italic = True
        exp_run.font.size = Pt(10)
        exp_run.font.color.rgb = MUTED_COLOR

        snippet_run = exp_para.add_run(f"\nRelevant text: \"{question.relevant_article_snippet}\"")
        snippet_run.font.size = Pt(10)
        snippet_run.font.color.rgb = MUTED_COLOR

    doc.add_paragraph()


def add_answer_key(doc: Document, quiz: Quiz) -> None:
    """
    Add an answer key section at the end of the document.

    Args:
        doc: Document to add to
        quiz: Quiz object
    """
    doc.add_page_break()

    header = doc.add_heading("Answer Key", level=1)
    header.alignment = WD_ALIGN_PARAGRAPH.CENTER
    header.runs[0].font.color.rgb = HEADING_COLOR

    table = doc.add_table(rows=1, cols=5)
    table.style = "Light Grid Accent 1"

    header_cells = table.rows[0].cells
    for cell, text in zip(header_cells, ("Q#", "Type", "Answer", "Rationale", "Relevant Text")):
        cell.text = text
        for paragraph in cell.paragraphs:
            for run in paragraph.runs:
                run.bold = True

    for question in quiz.questions:
        row_cells = table.add_row().cells
        row_cells[0].text = str(question.question_number)
        row_cells[1].text = question.question_type.value
        row_cells[2].text = format_correct_answer(question)
        row_cells[3].text = question.rationale
        row_cells[4].text = question.relevant_article_snippet


def generate_answer_key(quiz: Quiz, output_path: str) -> str:
    """
    Generate a separate answer key document.

    Args:
        quiz: Quiz object
        output_path: Path where the answer key should be saved

    Returns:
        Path to the created answer key file
    """
    doc = Document()
    setup_document_styles(doc)

    title = doc.add_heading(f"{quiz.title} - Answer Key", level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    add_answer_key(doc, quiz)
    doc.save(output_path)

    return output_path


def export_quiz_with_separate_answers(
    quiz: Quiz, base_path: str, output_dir: str = "output", article: str | None = None
) -> tuple[str, str]:
    """
    Export quiz with questions and answers in separate files.

    Args:
        quiz: Quiz object
        base_path: Base path for output files (without extension)
        output_dir: Directory to save files in
        article: Reading passage to print before the questions

    Returns:
        Tuple of (questions_path, answers_path)
    """
    output_path = ensure_output_directory(output_dir)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base_name = Path(base_path).name

    questions_path = str(output_path / f"{base_name}_questions_{timestamp}.docx")
    answers_path = str(output_path / f"{base_name}_answers_{timestamp}.docx")

    export_to_docx(
        quiz, questions_path, include_answers=False, use_output_dir=False, article=article
    )
    generate_answer_key(quiz, answers_path)

    return questions_path, answers_path
