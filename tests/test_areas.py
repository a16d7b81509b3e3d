from areas import resolve_area, unique_areas
from models import ExtractedAddress


def test_resolve_tokyo_ward():
    area = resolve_area("東京都渋谷区神南1-1")
    assert (area.prefecture, area.municipality) == ("東京都", "渋谷区")
    assert area.label == "東京都 渋谷区"


def test_resolve_city_with_ward():
    area = resolve_area("大阪府大阪市北区")
    assert (area.prefecture, area.municipality) == ("大阪府", "大阪市北区")


def test_resolve_designated_city_without_prefecture():
    area = resolve_area("札幌市中央区")
    assert (area.prefecture, area.municipality) == ("北海道", "札幌市中央区")


def test_resolve_designated_city_in_the_middle_of_text():
    area = resolve_area("本店：横浜市中区本町1-1")
    assert (area.prefecture, area.municipality) == ("神奈川県", "横浜市中区")


def test_resolve_district_town():
    area = resolve_area("北海道上川郡東川町1-1")
    assert (area.prefecture, area.municipality) == ("北海道", "上川郡東川町")


def test_resolve_plain_city():
    area = resolve_area("愛知県名古屋市天白区原1-1")
    assert (area.prefecture, area.municipality) == ("愛知県", "名古屋市天白区")


def test_resolve_unknown_returns_none():
    assert resolve_area("Springfield 742 Evergreen Terrace") is None
    assert resolve_area("") is None
    assert resolve_area(None) is None


def _addr(text):
    return ExtractedAddress(postal_code="〒000-0000", address=text)


def test_unique_areas_dedupes_by_prefecture_and_municipality():
    areas = unique_areas(
        {"prefecture": "東京都", "city": "渋谷区"},
        [_addr("東京都渋谷区神南1-1"), _addr("大阪府大阪市北区梅田1-1"), _addr("大阪府大阪市北区中之島2-2")],
    )
    assert [a.label for a in areas] == ["東京都 渋谷区", "大阪府 大阪市北区"]
    assert areas[0].is_headquarters is True
    assert areas[1].is_headquarters is False


def test_unique_areas_without_headquarters_skips_unresolvable():
    areas = unique_areas({}, [_addr("Springfield"), _addr("福岡市博多区博多駅前1-1")])
    assert [a.label for a in areas] == ["福岡県 福岡市博多区"]
