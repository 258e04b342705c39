from ebm_validator.extraction.models import TextPage, TextSnapshot
from ebm_validator.templates.models import TemplateConfig
from ebm_validator.templates.matcher import select_template
from ebm_validator.templates.template import Template


def _make_template(name: str, keywords: list[str], exclude: list[str] | None = None) -> Template:
    return Template(
        TemplateConfig.model_validate(
            {"template_name": name, "keywords": keywords, "exclude_keywords": exclude or []}
        )
    )


def _make_snapshot(*pages: str) -> TextSnapshot:
    return TextSnapshot.from_pages(
        "invoice.pdf", [TextPage(page_number=i + 1, text=text) for i, text in enumerate(pages)]
    )


class TestSelectTemplate:
    def test_returns_first_match_in_load_order(self) -> None:
        generic = _make_template("generic", ["TIN"])
        specific = _make_template("specific", ["TIN", "SDC ID"])
        snapshot = _make_snapshot("TIN: 101234567", "SDC ID: SDC01")

        assert select_template(snapshot, [generic, specific]) is generic
        assert select_template(snapshot, [specific, generic]) is specific

    def test_ebm_invoice_scenario(self) -> None:
        invoice = _make_template("invoice", ["EBM INVOICE"], ["PROFORMA"])
        proforma = _make_template("proforma", ["PROFORMA"])
        snapshot = _make_snapshot("KIGALI LTD\nEBM INVOICE\nTOTAL 5,000.00")

        assert select_template(snapshot, [proforma, invoice]) is invoice
        assert select_template(snapshot, [proforma]) is None

    def test_keywords_may_span_pages(self) -> None:
        template = _make_template("t", ["TIN", "MRC"])
        assert select_template(_make_snapshot("TIN: 1", "MRC: WIS1"), [template]) is template

    def test_no_templates_returns_none(self) -> None:
        assert select_template(_make_snapshot("anything"), []) is None
