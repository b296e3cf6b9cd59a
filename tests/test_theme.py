from taskboard import storage as st
from taskboard import theme
from taskboard.theme import Theme, ThemeService


def test_default_theme_is_dark(storage):
    service = ThemeService(storage)
    assert service.theme == Theme.DARK
    assert service.is_dark


def test_toggle_persists(storage):
    service = ThemeService(storage)
    assert service.toggle() == Theme.LIGHT
    assert storage.load_value(st.THEME) == "light"
    assert ThemeService(storage).theme == Theme.LIGHT
    assert service.toggle() == Theme.DARK


def test_unknown_theme_ignored(storage):
    service = ThemeService(storage)
    assert service.set_theme("neon") is False
    assert service.theme == Theme.DARK


def test_unknown_stored_theme_falls_back(storage):
    storage.save_value(st.THEME, "neon")
    assert ThemeService(storage).theme == Theme.DARK


def test_theme_css_uses_palette():
    assert theme.PALETTES[Theme.LIGHT]["background"] in theme.theme_css("light")
    assert theme.PALETTES[Theme.DARK]["background"] in theme.theme_css(Theme.DARK)


def test_set_theme(monkeypatch):
    calls = {}
    monkeypatch.setattr(theme.st, "set_page_config", lambda **kw: calls.setdefault("config", kw))
    monkeypatch.setattr(theme.st, "markdown", lambda body, **kw: calls.setdefault("markdown", body))
    theme.set_theme(page_title="My Tasks", theme="light")
    assert calls["config"]["page_title"] == "My Tasks"
    assert theme.PALETTES[Theme.LIGHT]["background"] in calls["markdown"]


def test_set_theme_tolerates_repeated_page_config(monkeypatch):
    def already_set(**kw):
        raise theme.StreamlitAPIException("set_page_config() can only be called once")

    rendered = []
    monkeypatch.setattr(theme.st, "set_page_config", already_set)
    monkeypatch.setattr(theme.st, "markdown", lambda body, **kw: rendered.append(body))
    theme.set_theme()
    assert len(rendered) == 1
