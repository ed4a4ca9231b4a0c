import pytest

from seed import load_offers_from_csv, preview_import
from storage import EntityStore, MemoryBlobStore
from ui import I18N, t


@pytest.mark.parametrize("language", ["en", "zh"])
def test_labels_used_by_app_exist_in_both_languages(language: str) -> None:
    for key in ("language", "no_matches", "import_preview", "import_button"):
        assert key in I18N[language]


def test_language_selector_label_combines_both_languages() -> None:
    assert f"{t('en', 'language')} / {t('zh', 'language')}" == "Language / 语言"


@pytest.mark.parametrize("language", ["en", "zh"])
def test_import_preview_label_formats_preview_counts(language: str) -> None:
    counts = preview_import(EntityStore(MemoryBlobStore()), load_offers_from_csv("student_name,university\nAlice Tan,MIT\n"))

    text = t(language, "import_preview").format(**counts)

    assert "1" in text
    assert "{" not in text
