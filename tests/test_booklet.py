"""
End-to-end tests: document output, single and batch runs, template marking
and the command-line interface.

Workbooks are built in memory (or saved to tmp_path for the CLI) and image
downloads go through FakeFetch.
"""

import logging

import docx
import openpyxl
import pytest
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt
from openpyxl import Workbook

from conftest import (
    GIVEN_4, SOLUTION_4, SOLUTION_6, FakeFetch, add_answers_sheet, add_images_row,
    build_workbook, image_url, png_bytes,
)
from sudoku_booklet import cli
from sudoku_booklet.booklet import generate_batch, generate_puzzle, mark_template, template_copy_name
from sudoku_booklet.cache import ImageResource, ResourceCache
from sudoku_booklet.config import BatchPolicy, BookletConfig, GivenMode
from sudoku_booklet.document import BookletDocument, document_filename
from sudoku_booklet.errors import ExternalCollaboratorError, MissingSheetNameError, RangeError
from sudoku_booklet.grid import Cell
from sudoku_booklet.render import section_title
from sudoku_booklet.sheets import Spreadsheet, sheet_title

GIVEN_6 = [[(i + j) % 3 == 0 for j in range(6)] for i in range(6)]


def headings(document):
    return [p.text for p in document.paragraphs if p.style.name == "Heading 1"]


def texts(document):
    return [p.text for p in document.paragraphs]


def build_batch_workbook(beta_answers="AnsBeta"):
    """
    Images sheet laid out for batch runs (column offset 3):
    row 2 "Alpha" 4x4 via Catalog references, row 3 unnamed, row 4 "Beta" 6x6.
    """
    wb = Workbook()
    images = wb.active
    images.title = "Images"
    images.cell(row=1, column=1, value="Name")

    catalog = wb.create_sheet("Catalog")
    for n in range(1, 7):
        catalog.cell(row=n, column=1, value=image_url(n))

    images.cell(row=2, column=1, value="Alpha")
    add_images_row(images, 2, 4, "AnsAlpha", column_offset=3,
                   formulas=[f"=IMAGE(Catalog!A{n})" for n in range(1, 5)])
    images.cell(row=4, column=1, value="Beta")
    add_images_row(images, 4, 6, beta_answers, column_offset=3)

    add_answers_sheet(wb, "AnsAlpha", SOLUTION_4, GIVEN_4)
    add_answers_sheet(wb, "AnsBeta", SOLUTION_6, GIVEN_6)

    template = wb.create_sheet("Template")
    template["A1"] = "Grid"
    return wb


class TestSectionTitles:

    def test_vocabulary(self):
        assert section_title("ROWS") == "ROWS must not contain any of these values"
        assert section_title("GROUPS", may_contain=True) == "GROUPS may only contain one of these values"


class TestBookletDocument:

    def test_margins_heading_and_rule(self, tmp_path):
        doc = BookletDocument("Margins", margin_top=36, margin_bottom=18)
        header = doc.heading("Reference Images")
        rule = doc.rule()
        paragraph = doc.paragraph("ROW 1: ")
        doc.image(paragraph, ImageResource("http://x/img1.png", png_bytes(1)), 50, 40)
        doc.page_break()
        path = doc.save(tmp_path)

        assert header.alignment == WD_ALIGN_PARAGRAPH.CENTER
        assert "w:pBdr" in rule._p.xml
        assert path == tmp_path / "Margins.docx"

        saved = docx.Document(str(path))
        assert saved.sections[0].top_margin == Pt(36)
        assert saved.sections[0].bottom_margin == Pt(18)
        assert len(saved.inline_shapes) == 1
        assert saved.inline_shapes[0].width == Pt(50)
        assert saved.inline_shapes[0].height == Pt(40)

    def test_bad_image_is_wrapped(self):
        doc = BookletDocument("Broken")
        paragraph = doc.paragraph("")
        with pytest.raises(ExternalCollaboratorError, match="http://x/bad"):
            doc.image(paragraph, ImageResource("http://x/bad", b"not a png"), 10, 10)

    def test_filename_is_sanitised(self):
        assert document_filename("Mint Hulzo Coin") == "Mint Hulzo Coin.docx"
        assert document_filename("a/b: c?") == "a_b_ c_.docx"
        assert document_filename("  ") == "booklet.docx"


class TestGeneratePuzzle:

    def test_single_puzzle_document(self, spreadsheet, fake_fetch, tmp_path):
        config = BookletConfig.from_dict({"title": "Mint Hulzo Coin", "output_dir": tmp_path})
        result = generate_puzzle(spreadsheet, config, ResourceCache(fetch=fake_fetch))

        assert result.grid_size == 4
        assert result.puzzle[0] == [1, None, None, None]
        assert result.document_path == tmp_path / "Mint Hulzo Coin.docx"
        assert result.template_copy is None

        saved = docx.Document(str(result.document_path))
        assert headings(saved) == [
            "ROWS must not contain any of these values",
            "COLUMNS must not contain any of these values",
            "GROUPS must not contain any of these values",
            "Reference Images",
            "Solution",
        ]
        paragraphs = texts(saved)
        for label in ("ROW 1: ", "ROW 4: ", "COLUMN 2: ", "GROUP 4: "):
            assert label in paragraphs

        # 4 givens x 3 sections + 4x4 reference + 4x4 solution
        assert len(saved.inline_shapes) == 4 * 3 + 16 + 16
        # Each distinct image downloaded once
        assert sorted(fake_fetch.calls) == [image_url(n) for n in range(1, 5)]

    def test_plain_mode_and_may_contain(self, spreadsheet, fake_fetch, tmp_path):
        config = BookletConfig.from_dict({
            "title": "Inverted",
            "output_dir": tmp_path,
            "given_mode": "plain",
            "may_contain": True,
        })
        result = generate_puzzle(spreadsheet, config, ResourceCache(fetch=fake_fetch))

        assert result.puzzle[0] == [None, 2, 3, 4]
        saved = docx.Document(str(result.document_path))
        assert headings(saved)[0] == "ROWS may only contain one of these values"
        assert len(saved.inline_shapes) == 12 * 3 + 16 + 16

    def test_six_by_six(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_workbook(SOLUTION_6, GIVEN_6))
        config = BookletConfig.from_dict({"title": "Six", "output_dir": tmp_path})
        result = generate_puzzle(spreadsheet, config, ResourceCache(fetch=fake_fetch))

        givens = sum(sum(row) for row in GIVEN_6)
        saved = docx.Document(str(result.document_path))
        assert result.grid_size == 6
        assert len(saved.inline_shapes) == givens * 3 + 36 + 36
        assert "GROUP 6: " in texts(saved)

    def test_missing_answers_sheet_name(self, fake_fetch, tmp_path):
        wb = build_workbook()
        wb["Images"]["E1"] = None
        config = BookletConfig.from_dict({"output_dir": tmp_path})
        with pytest.raises(MissingSheetNameError, match="Images!E1"):
            generate_puzzle(Spreadsheet(wb), config, ResourceCache(fetch=fake_fetch))

    def test_unknown_answers_sheet(self, fake_fetch, tmp_path):
        wb = build_workbook()
        wb["Images"]["E1"] = "Missing"
        config = BookletConfig.from_dict({"output_dir": tmp_path})
        with pytest.raises(ExternalCollaboratorError, match='Sheet "Missing" not found'):
            generate_puzzle(Spreadsheet(wb), config, ResourceCache(fetch=fake_fetch))

    def test_incomplete_solution(self, fake_fetch, tmp_path):
        wb = build_workbook()
        wb["Answers"]["C2"] = None
        config = BookletConfig.from_dict({"output_dir": tmp_path})
        with pytest.raises(RangeError, match="row 2, column 3"):
            generate_puzzle(Spreadsheet(wb), config, ResourceCache(fetch=fake_fetch))
        assert not (tmp_path / "Sudoku.docx").exists()


class TestTemplateMarking:

    def test_marks_given_cells_and_replaces_existing_copy(self):
        wb = build_workbook()
        template = wb.create_sheet("Template")
        template["A1"] = "Grid"
        spreadsheet = Spreadsheet(wb)
        cells = [[Cell(SOLUTION_4[i][j], GIVEN_4[i][j]) for j in range(4)] for i in range(4)]

        mark_template(spreadsheet, "Template", "Mint Grid", cells, origin=(2, 2))
        copy = mark_template(spreadsheet, "Template", "Mint Grid", cells, origin=(2, 2), marker="*")

        assert spreadsheet.sheet_names.count("Mint Grid") == 1
        assert copy.value(1, 1) == "Grid"
        for k in range(4):
            assert copy.value(2 + k, 2 + k) == "*"
        assert copy.value(2, 3) is None
        # The template itself is untouched
        assert template["B2"].value is None

    def test_title_with_forbidden_characters(self, fake_fetch, tmp_path):
        """A puzzle name Excel refuses as a sheet title still gets its marked copy."""
        wb = build_workbook()
        wb.create_sheet("Template")["A1"] = "Grid"
        spreadsheet = Spreadsheet(wb)
        config = BookletConfig.from_dict({
            "title": "Coin 1/2",
            "output_dir": tmp_path,
            "template_sheet": "Template",
            "workbook_out": tmp_path / "marked.xlsx",
        })

        result = generate_puzzle(spreadsheet, config, ResourceCache(fetch=fake_fetch))

        assert result.document_path == tmp_path / "Coin 1_2.docx"
        assert result.template_copy == "Coin 1_2 Grid"
        assert spreadsheet.sheet_names == ["Images", "Answers", "Template", "Coin 1_2 Grid"]
        assert openpyxl.load_workbook(tmp_path / "marked.xlsx")["Coin 1_2 Grid"]["A1"].value == "X"

    def test_copy_names_fit_sheet_title_limit(self):
        name = template_copy_name("Mint Hulzo Commemorative Coin Set 2024")
        assert len(name) == 31
        assert name == "Mint Hulzo Commemorative C Grid"
        assert sheet_title("a[b]:c*?") == "a_b_c_"
        assert sheet_title("  ") == "Sheet"
        assert template_copy_name("/") == "_ Grid"

    def test_failed_rename_leaves_no_copy(self):
        wb = build_workbook()
        wb.create_sheet("Template")
        spreadsheet = Spreadsheet(wb)

        with pytest.raises(ExternalCollaboratorError, match='Failed to copy sheet "Template"'):
            spreadsheet.copy_sheet("Template", "Bad/Name")
        assert spreadsheet.sheet_names == ["Images", "Answers", "Template"]



class TestBatch:

    def config(self, tmp_path, **overrides):
        payload = {"batch": True, "column_offset": 3, "output_dir": tmp_path / "docs"}
        payload.update(overrides)
        return BookletConfig.from_dict(payload)

    def test_skip_unnamed_rows(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_batch_workbook())
        results = generate_batch(spreadsheet, self.config(tmp_path), ResourceCache(fetch=fake_fetch))

        assert [r.title for r in results] == ["Alpha", "Beta"]
        assert [r.row for r in results] == [2, 4]
        assert [r.grid_size for r in results] == [4, 6]
        assert (tmp_path / "docs" / "Alpha.docx").exists()
        assert (tmp_path / "docs" / "Beta.docx").exists()
        # Images shared across rows are fetched once per run
        assert len(fake_fetch.calls) == len(set(fake_fetch.calls)) == 6

    def test_stop_at_unnamed_row(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_batch_workbook())
        config = self.config(tmp_path, batch_policy="stop")
        assert config.batch_policy is BatchPolicy.STOP

        results = generate_batch(spreadsheet, config, ResourceCache(fetch=fake_fetch))
        assert [r.title for r in results] == ["Alpha"]
        assert not (tmp_path / "docs" / "Beta.docx").exists()

    def test_failure_keeps_earlier_rows(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_batch_workbook(beta_answers=None))
        with pytest.raises(MissingSheetNameError):
            generate_batch(spreadsheet, self.config(tmp_path), ResourceCache(fetch=fake_fetch))
        assert (tmp_path / "docs" / "Alpha.docx").exists()

    def test_template_copies_are_saved(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_batch_workbook())
        config = self.config(
            tmp_path,
            template_sheet="Template",
            template_origin=(2, 2),
            workbook_out=tmp_path / "marked.xlsx",
        )
        results = generate_batch(spreadsheet, config, ResourceCache(fetch=fake_fetch))
        assert [r.template_copy for r in results] == ["Alpha Grid", "Beta Grid"]

        saved = openpyxl.load_workbook(tmp_path / "marked.xlsx")
        alpha = saved["Alpha Grid"]
        assert alpha["A1"].value == "Grid"
        assert [alpha.cell(row=2 + k, column=2 + k).value for k in range(4)] == ["X"] * 4
        assert alpha["C2"].value is None

        beta = saved["Beta Grid"]
        marked = {
            (i, j) for i in range(6) for j in range(6)
            if beta.cell(row=2 + i, column=2 + j).value == "X"
        }
        assert marked == {(i, j) for i in range(6) for j in range(6) if GIVEN_6[i][j]}

    def test_name_column_inside_image_window(self, fake_fetch, tmp_path):
        spreadsheet = Spreadsheet(build_batch_workbook())
        with pytest.raises(ValueError, match="overlaps"):
            generate_batch(spreadsheet, self.config(tmp_path, column_offset=0), ResourceCache(fetch=fake_fetch))

    def test_colliding_names_are_reported(self, fake_fetch, tmp_path, caplog):
        """Rows whose names clean to the same file and sheet title log a warning."""
        wb = build_batch_workbook()
        wb["Images"]["A2"] = "A/B"
        wb["Images"]["A4"] = "A:B"
        config = self.config(tmp_path, template_sheet="Template", workbook_out=tmp_path / "marked.xlsx")

        with caplog.at_level(logging.WARNING, logger="sudoku_booklet.booklet"):
            results = generate_batch(Spreadsheet(wb), config, ResourceCache(fetch=fake_fetch))

        assert [r.document_path.name for r in results] == ["A_B.docx", "A_B.docx"]
        warnings = [m for m in caplog.messages if "overwrote" in m]
        assert len(warnings) == 2
        assert any("A_B.docx written for row 2" in m for m in warnings)
        assert any("A_B Grid written for row 2" in m for m in warnings)

    def test_distinct_names_do_not_warn(self, fake_fetch, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="sudoku_booklet.booklet"):
            generate_batch(Spreadsheet(build_batch_workbook()), self.config(tmp_path), ResourceCache(fetch=fake_fetch))
        assert not [m for m in caplog.messages if "overwrote" in m]



class TestConfig:

    def test_defaults(self):
        config = BookletConfig.from_dict({})
        assert config.title == "Sudoku"
        assert config.given_mode is GivenMode.BOLD
        assert config.batch_policy is BatchPolicy.SKIP
        assert config.image_size == (100, 100)
        assert config.template_sheet is None

    def test_coercion(self):
        config = BookletConfig.from_dict({
            "given_mode": "PLAIN",
            "column_offset": "4",
            "template_origin": ["3", 2],
            "template_sheet": "",
        })
        assert config.given_mode is GivenMode.PLAIN
        assert config.column_offset == 4
        assert config.template_origin == (3, 2)
        assert config.template_sheet is None

    def test_rejects_bad_values(self):
        with pytest.raises(ValueError, match="Unknown configuration keys"):
            BookletConfig.from_dict({"colour": "blue"})
        with pytest.raises(ValueError, match="given_mode"):
            BookletConfig.from_dict({"given_mode": "italic"})
        with pytest.raises(ValueError, match="column_offset"):
            BookletConfig.from_dict({"column_offset": -1})


class TestCli:

    @pytest.fixture
    def patched_fetch(self, monkeypatch):
        fetch = FakeFetch()
        monkeypatch.setattr(cli, "fetch_url", lambda locator, timeout: fetch(locator))
        return fetch

    def test_single_run(self, tmp_path, patched_fetch, capsys):
        path = tmp_path / "puzzles.xlsx"
        build_workbook().save(path)

        with pytest.raises(SystemExit) as exc:
            cli.main(["--workbook", str(path), "--out", str(tmp_path / "out"), "--title", "Mint Hulzo Coin"])

        assert exc.value.code == 0
        assert (tmp_path / "out" / "Mint Hulzo Coin.docx").exists()
        output = capsys.readouterr().out
        assert "[OK] Generated 1 booklet(s), 4 image(s) fetched" in output
        assert len(patched_fetch.calls) == 4

    def test_batch_run_with_template(self, tmp_path, patched_fetch):
        path = tmp_path / "batch.xlsx"
        build_batch_workbook().save(path)

        with pytest.raises(SystemExit) as exc:
            cli.main(["--workbook", str(path), "--out", str(tmp_path / "out"), "--batch", "--template", "Template"])

        assert exc.value.code == 0
        # Default origin marks from A1
        assert openpyxl.load_workbook(path)["Alpha Grid"]["A1"].value == "X"

    def test_template_origin_margins_and_image_size(self, tmp_path, patched_fetch):
        path = tmp_path / "batch.xlsx"
        build_batch_workbook().save(path)

        with pytest.raises(SystemExit) as exc:
            cli.main([
                "--workbook", str(path), "--out", str(tmp_path / "out"), "--batch",
                "--template", "Template", "--template-origin", "2", "2",
                "--margins", "20", "10", "--image-width", "60", "--image-height", "30",
            ])

        assert exc.value.code == 0
        alpha = openpyxl.load_workbook(path)["Alpha Grid"]
        assert alpha["A1"].value == "Grid"
        assert [alpha.cell(row=2 + k, column=2 + k).value for k in range(4)] == ["X"] * 4

        saved = docx.Document(str(tmp_path / "out" / "Alpha.docx"))
        assert saved.sections[0].top_margin == Pt(20)
        assert saved.sections[0].bottom_margin == Pt(10)
        assert saved.inline_shapes[0].width == Pt(60)
        assert saved.inline_shapes[0].height == Pt(30)

    def test_flags_map_to_config(self):
        args = cli.build_parser().parse_args([
            "--workbook", "w.xlsx", "--batch", "--name-column", "2", "--column-offset", "4",
            "--image-size", "80", "--image-height", "40", "--template-origin", "3", "5",
        ])
        config = cli.config_from_args(args)

        assert config.name_column == 2
        assert config.image_size == (80, 40)
        assert config.template_origin == (3, 5)
        assert (config.margin_top, config.margin_bottom) == (36, 18)


    def test_data_error_exit_code(self, tmp_path, patched_fetch, capsys):
        wb = build_workbook()
        wb["Images"]["E1"] = '=IMAGE("http://x/img5.png")'
        path = tmp_path / "five.xlsx"
        wb.save(path)

        with pytest.raises(SystemExit) as exc:
            cli.main(["--workbook", str(path), "--out", str(tmp_path / "out")])

        assert exc.value.code == 2
        assert "Found 5 image formulas" in capsys.readouterr().err

    def test_missing_workbook(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            cli.main(["--workbook", str(tmp_path / "nope.xlsx")])
        assert exc.value.code == 1
