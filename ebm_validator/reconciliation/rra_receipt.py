import re

from bs4 import BeautifulSoup, Tag

from ebm_validator.normalization.normalizers import (
    normalize_invoice_number,
    normalize_tin,
    to_date_string,
    to_number,
)
from ebm_validator.reconciliation.enrichment import BaseReceiptResolver
from ebm_validator.reconciliation.exceptions import EnrichmentError
from ebm_validator.reconciliation.models import QrPayload

_WHITESPACE_RE = re.compile(r"\s+")
_CURRENCY_RE = re.compile(r"(rwf)", re.IGNORECASE)

# Block titles as printed on the portal, including its "SINGNATURE" typo.
_SDC_TITLES = {
    "DATE": "issue_date",
    "RECEIPT NUMBER": "invoice_number",
    "SDC ID": "sdc_id",
    "INTERNAL DATA": "internal_data",
    "RECEIPT SINGNATURE": "receipt_signature",
    "MRC": "mrc",
}


class RraReceiptResolver(BaseReceiptResolver):
    """Rwanda Revenue Authority receipt verification page (myrra.rra.gov.rw)."""

    hosts = frozenset({"myrra.rra.gov.rw"})

    def parse(self, html: str, url: str) -> QrPayload:
        soup = BeautifulSoup(html, "html.parser")
        container = soup.select_one(".cnt-wrap")
        if container is None:
            raise EnrichmentError("RRA receipt page has no receipt container")

        top_info = _text(container.select(".topinfo.detail"))
        buy_list = _text(container.select(".buylist-section"))
        totals = container.select(".total-detail")
        sdc_sections = container.select(".total-detail.sdc")

        total_text, vat_text = _totals(totals[0]) if totals else (None, None)
        sdc = _sdc_values(sdc_sections)
        sdc_text = _text(sdc_sections)
        invoice_number = sdc.get("invoice_number") or _label_value(sdc_text, r"Receipt\s+Number")
        issue_date = sdc.get("issue_date") or _label_value(sdc_text, "Date")
        currency_match = _CURRENCY_RE.search(_text(totals))
        currency = currency_match.group(1).upper() if currency_match else None

        additional: dict[str, object] = {"rra_receipt_url": url}
        client_name = _label_value(buy_list, r"CLIENT\s+NAME")
        if client_name:
            additional["client_name"] = client_name
        for key in ("sdc_id", "internal_data", "receipt_signature", "mrc"):
            if sdc.get(key):
                additional[key] = sdc[key]
        if currency:
            additional["currency"] = currency

        seller_tin = _label_value(top_info, "TIN")
        buyer_tin = _label_value(buy_list, r"CLIENT\s+TIN")
        return QrPayload(
            raw=url,
            tin=normalize_tin(seller_tin) if seller_tin else None,
            buyer_tin=normalize_tin(buyer_tin) if buyer_tin else None,
            invoice_number=normalize_invoice_number(invoice_number) if invoice_number else None,
            issue_date=to_date_string(issue_date) if issue_date else None,
            total_amount=to_number(total_text) if total_text else None,
            vat_amount=to_number(vat_text) if vat_text else None,
            currency=currency,
            additional=additional,
        )


def _sanitize(value: str) -> str:
    return _WHITESPACE_RE.sub(" ", value).strip()


def _text(elements: list[Tag]) -> str:
    return "\n".join(element.get_text("\n") for element in elements)


def _title_and_value(block: Tag) -> tuple[str, str]:
    title = _sanitize(" ".join(t.get_text(" ") for t in block.select(".tit")))
    value = _sanitize(" ".join(v.get_text(" ") for v in block.select(".value")))
    return title.rstrip(":").strip().upper(), value


def _label_value(text: str, label: str) -> str | None:
    match = re.search(rf"{label}\s*:\s*(.+?)(?:\n|$)", text.replace("\r", "\n"), re.IGNORECASE)
    if match is None:
        return None
    return _sanitize(match.group(1)) or None


def _totals(section: Tag) -> tuple[str | None, str | None]:
    total: str | None = None
    vat: str | None = None
    for block in section.find_all("div"):
        title, value = _title_and_value(block)
        if total is None and title == "TOTAL":
            total = value
        if vat is None and title in ("TOTAL TAX", "TOTAL TAX-B"):
            vat = value
    return total, vat


def _sdc_values(sections: list[Tag]) -> dict[str, str]:
    values: dict[str, str] = {}
    for section in sections:
        for block in section.select("div, .block-type"):
            title, value = _title_and_value(block)
            key = _SDC_TITLES.get(title)
            if key and value and key not in values:
                values[key] = value
    return values
