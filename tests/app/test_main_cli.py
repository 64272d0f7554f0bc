from __future__ import annotations

import logging

import pytest

from crudmerge import main as main_module
from crudmerge.domain.merge import describe
from tests.helpers.models import Gadget


@pytest.fixture
def logging_levels(monkeypatch: pytest.MonkeyPatch) -> list[int]:
    levels: list[int] = []

    def fake_configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
        levels.append(level)

    monkeypatch.setattr(main_module, "configure_logging", fake_configure_logging)
    return levels


def test_describe_prints_fields(
    capsys: pytest.CaptureFixture[str], logging_levels: list[int]
) -> None:
    main_module.main(["describe", "tests.helpers.models:Person"])

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "tests.helpers.models.Person"
    assert lines[1] == "identity\tid"
    assert "name\tscalar\treject-null\t-" in lines
    assert "nickname\tscalar\taccept-null\t-" in lines
    assert "tags\tscalar-collection\treject-null\tstr" in lines
    assert "phones\tentity-collection\treject-null\tPhone" in lines
    assert "documents\tentity-map\treject-null\tDocument" in lines
    assert logging_levels == [logging.INFO]


def test_describe_verbose_enables_debug_logging(
    capsys: pytest.CaptureFixture[str], logging_levels: list[int]
) -> None:
    main_module.main(["describe", "tests.helpers.models:Memo", "--verbose"])

    assert "text\tscalar\taccept-null\t-" in capsys.readouterr().out.splitlines()
    assert logging_levels == [logging.DEBUG]


@pytest.mark.usefixtures("logging_levels")
@pytest.mark.parametrize(
    "target",
    [
        "tests.helpers.models",
        "tests.helpers.missing_module:Person",
        "tests.helpers.models:Missing",
        "tests.helpers.models:mapper_registry",
        "tests.helpers.models:Contradiction",
    ],
)
def test_describe_rejects_bad_targets(capsys: pytest.CaptureFixture[str], target: str) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["describe", target])

    assert excinfo.value.code == 2
    assert capsys.readouterr().err.startswith("Error:")


def test_render_descriptor_lists_excluded_fields() -> None:
    lines = main_module.render_descriptor(describe(Gadget))

    assert lines[1] == "identity\t-"
    assert "label\tscalar\treject-null\t-" in lines
    assert "ghost\texcluded" in lines
    assert "loose\texcluded" in lines
