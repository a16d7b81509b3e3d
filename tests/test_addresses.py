from addresses import extract_addresses, merge_addresses, html_to_plain
from models import ExtractedAddress

FOOTER = """
<footer>
  <p>〒150-0041<br>東京都渋谷区神南1-2-3 神南ビル2F TEL:03-1234-5678</p>
  <p>〒150-0041 東京都渋谷区神南1-2-3</p>
  <p>〒999-9999 Sample Street Number</p>
</footer>
"""


def test_extract_addresses_splits_address_and_labeled_phone():
    addrs = extract_addresses(FOOTER, "トップページ")
    assert len(addrs) == 1
    addr = addrs[0]
    assert addr.postal_code == "〒150-0041"
    assert addr.address == "東京都渋谷区神南1-2-3 神南ビル2F"
    assert addr.phone == "03-1234-5678"
    assert addr.page == "トップページ"
    assert "〒150-0041" in addr.context


def test_extract_addresses_one_entry_per_postal_code():
    html = FOOTER + "<p>〒150-0041 東京都渋谷区宇田川町9-9 TEL:03-0000-0000</p>"
    zips = [a.postal_code for a in extract_addresses(html)]
    assert len(zips) == len(set(zips))


def test_extract_addresses_requires_administrative_unit():
    assert extract_addresses("<p>〒999-9999 Sample Street Number</p>") == []


def test_extract_addresses_bare_number_used_when_no_tel_label():
    addrs = extract_addresses("<p>〒530-0001 大阪府大阪市北区梅田1-1-1 FAX:06-6123-4567</p>")
    assert addrs[0].address == "大阪府大阪市北区梅田1-1-1"
    assert addrs[0].phone == "06-6123-4567"


def test_extract_addresses_number_inside_address_is_not_a_phone():
    addrs = extract_addresses("<p>〒530-0001 大阪府大阪市北区梅田1-1-1 06-6123-4567</p>")
    assert addrs[0].address.startswith("大阪府大阪市北区梅田1-1-1")
    assert addrs[0].phone == ""


def test_extract_addresses_rejects_too_short_and_too_long():
    assert extract_addresses("〒100-0001 港区   ") == []
    assert extract_addresses("〒100-0001 東京都" + "あ" * 110) == []


def test_extract_addresses_unescapes_entities():
    html = "<p>〒104-0061&nbsp;東京都中央区銀座1-1-1&nbsp;A&amp;Bビル</p>"
    addrs = extract_addresses(html)
    assert addrs[0].address == "東京都中央区銀座1-1-1 A&Bビル"


def test_extract_addresses_empty_html():
    assert extract_addresses("") == []
    assert extract_addresses(None) == []


def test_html_to_plain_replaces_tags_with_spaces():
    assert html_to_plain("<b>東京都</b>渋谷区") == " 東京都 渋谷区"


def test_merge_addresses_first_postal_code_wins():
    top = [ExtractedAddress("〒150-0041", "東京都渋谷区神南1-2-3", page="トップページ")]
    shops = [
        ExtractedAddress("〒150-0041", "東京都渋谷区神南1-2-3 2F", page="店舗一覧"),
        ExtractedAddress("〒530-0001", "大阪府大阪市北区梅田1-1-1", page="店舗一覧"),
    ]
    merged = merge_addresses(top, shops)
    assert [a.postal_code for a in merged] == ["〒150-0041", "〒530-0001"]
    assert merged[0].page == "トップページ"
