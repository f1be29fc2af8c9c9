"""ドメイン定数のテスト"""

from explainer_eval.domain.constants import (
    DEFAULT_STRATEGIES,
    DEFAULT_TITLE,
    MAX_COMMON_IMPROVEMENTS,
    METRIC_CATALOG,
    SCORE_MAX,
    SCORE_MIN,
)


def test_metric_catalog_size():
    """METRIC_CATALOGが19件であること"""
    assert len(METRIC_CATALOG) == 19


def test_metric_catalog_is_immutable_tuple():
    """METRIC_CATALOGが変更不可のタプルであること"""
    assert isinstance(METRIC_CATALOG, tuple)


def test_metric_catalog_unique():
    """METRIC_CATALOGに重複がないこと"""
    assert len(set(METRIC_CATALOG)) == len(METRIC_CATALOG)


def test_metric_catalog_order():
    """先頭と末尾のメトリクスが想定どおりであること"""
    assert METRIC_CATALOG[0] == "Clarity of problem articulation"
    assert METRIC_CATALOG[8] == "Pacing and speed of narration"
    assert METRIC_CATALOG[-1] == "Career-oriented presentation quality"


def test_no_metric_is_substring_of_another():
    """どのメトリクス名も他のメトリクス名の部分文字列でないこと"""
    for a in METRIC_CATALOG:
        for b in METRIC_CATALOG:
            if a != b:
                assert a not in b, f"{a!r} is contained in {b!r}"


def test_score_scale():
    assert (SCORE_MIN, SCORE_MAX) == (1, 10)
    assert MAX_COMMON_IMPROVEMENTS == 5


def test_defaults():
    assert DEFAULT_TITLE == "Unknown Title"
    assert DEFAULT_STRATEGIES == ["gemini", "gemini-rest"]
