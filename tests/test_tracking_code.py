from app.services.tracking_code import (
    extract_tracking_code,
    get_default_tracking_code,
    is_affiliate_url,
    replace_tracking_code,
)


def test_sets_tag_on_amazon_url():
    url = replace_tracking_code("https://www.amazon.com/dp/B0ABCDEF12", "mytag-20")
    assert url == "https://www.amazon.com/dp/B0ABCDEF12?tag=mytag-20"


def test_overwrites_existing_tag_and_keeps_param_order():
    url = replace_tracking_code(
        "https://www.amazon.co.uk/dp/B0ABCDEF12?ref=abc&tag=old-21&th=1", "new-21"
    )
    assert url == "https://www.amazon.co.uk/dp/B0ABCDEF12?ref=abc&tag=new-21&th=1"


def test_duplicate_tags_collapse_to_one():
    url = replace_tracking_code("https://amazon.de/dp/X?tag=a&psc=1&tag=b", "c-21")
    assert url == "https://amazon.de/dp/X?tag=c-21&psc=1"
    assert url.count("tag=") == 1


def test_non_affiliate_host_unchanged():
    url = "https://www.bestbuy.com/site/item?tag=keep"
    assert replace_tracking_code(url, "mytag-20") == url


def test_relative_and_empty_urls_unchanged():
    assert replace_tracking_code("", "x") == ""
    assert replace_tracking_code("/dp/B0ABCDEF12", "x") == "/dp/B0ABCDEF12"


def test_malformed_url_never_raises():
    url = "https://[amazon.com/dp/x"
    assert replace_tracking_code(url, "x") == url


def test_default_tracking_code_used():
    url = replace_tracking_code("https://www.amazon.com/dp/B0ABCDEF12")
    assert extract_tracking_code(url) == get_default_tracking_code() == "dealstream0f-20"


def test_extract_tracking_code():
    assert extract_tracking_code("https://amazon.com/dp/X?tag=abc-20") == "abc-20"
    assert extract_tracking_code("https://amazon.com/dp/X") is None


def test_is_affiliate_url_matches_regional_subdomains():
    assert is_affiliate_url("https://smile.amazon.de/dp/X")
    assert not is_affiliate_url("https://example.com/amazon/dp/X")
