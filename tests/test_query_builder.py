from query_builder import (
    DEFAULT_LIMIT,
    INT64_MAX,
    MAX_LIMIT,
    QueryOptions,
    build_query_options,
    parse_bool,
    parse_number,
    parse_positive_int,
    parse_sort,
)


def test_empty_query_gives_defaults():
    filt, options = build_query_options({})
    assert filt == {}
    assert options == QueryOptions(page=1, limit=DEFAULT_LIMIT, skip=0, sort=None, random=False)


def test_none_query_gives_defaults():
    filt, options = build_query_options(None)
    assert filt == {}
    assert options.page == 1
    assert options.limit == DEFAULT_LIMIT


def test_price_range_with_pagination():
    filt, options = build_query_options({"minPrice": "50", "maxPrice": "100", "page": "2", "limit": "5"})
    assert filt == {"price": {"$gte": 50, "$lte": 100}}
    assert options.skip == 5
    assert options.limit == 5
    assert options.sort is None
    assert options.random is False


def test_single_price_bound():
    filt, _ = build_query_options({"maxPrice": "19.99"})
    assert filt == {"price": {"$lte": 19.99}}


def test_non_numeric_page_and_limit_fall_back():
    _, options = build_query_options({"page": "abc", "limit": "ten"})
    assert options.page == 1
    assert options.limit == DEFAULT_LIMIT
    assert options.skip == 0


def test_zero_and_negative_values_fall_back():
    _, options = build_query_options({"page": "0", "limit": "-3"})
    assert options.page == 1
    assert options.limit == DEFAULT_LIMIT


def test_limit_is_capped():
    _, options = build_query_options({"limit": "5000"})
    assert options.limit == MAX_LIMIT


def test_exact_match_and_boolean_terms():
    filt, _ = build_query_options({
        "category": "women",
        "subCategory": "dresses",
        "isFeatured": "true",
        "isFlash": "FALSE",
    })
    assert filt == {"category": "women", "subCategory": "dresses", "isFeatured": True, "isFlash": False}


def test_invalid_values_are_dropped():
    filt, _ = build_query_options({"minPrice": "cheap", "isFlash": "maybe", "category": "  "})
    assert filt == {}


def test_unknown_keys_and_operators_are_dropped():
    filt, _ = build_query_options({
        "$where": "sleep(1000)",
        "title": "anything",
        "category": {"$ne": None},
    })
    assert filt == {}


def test_random_ignores_sort_and_skip():
    _, options = build_query_options({"random": "true", "sort": "-price", "page": "3", "limit": "4"})
    assert options.random is True
    assert options.sort is None
    assert options.skip == 0
    assert options.limit == 4


def test_sort_parsing():
    _, options = build_query_options({"sort": "-avgRate,price"})
    assert options.sort == [("avgRate", -1), ("price", 1)]


def test_parse_sort_drops_unknown_fields():
    assert parse_sort("password") is None
    assert parse_sort("-price,-price,secret") == [("price", -1)]
    assert parse_sort(None) is None


def test_field_parsers():
    assert parse_positive_int("7") == 7
    assert parse_positive_int(3) == 3
    assert parse_positive_int("2.5") is None
    assert parse_positive_int(True) is None
    assert parse_number("nan") is None
    assert parse_number("inf") is None
    assert parse_number("-4") == -4.0
    assert parse_bool("True") is True
    assert parse_bool("1") is None


def test_non_ascii_digits_fall_back():
    _, options = build_query_options({"page": "²", "limit": "٣"})
    assert options.page == 1
    assert options.limit == DEFAULT_LIMIT
    assert parse_positive_int("²") is None


def test_page_beyond_int64_falls_back():
    _, options = build_query_options({"page": "9" * 30, "limit": "10"})
    assert options.page == 1
    assert options.skip == 0


def test_page_whose_skip_overflows_int64_falls_back():
    _, options = build_query_options({"page": str(2 ** 62), "limit": "100"})
    assert options.page == 1
    assert options.skip == 0


def test_skip_always_fits_in_int64():
    _, options = build_query_options({"page": str(INT64_MAX // 100 + 1), "limit": "100"})
    assert options.skip <= INT64_MAX
