import logging

import pytest
from PIL import Image

from pixstack.__main__ import main
from pixstack.api.project import StorageProject

from .utils import make_stack

logger = logging.getLogger(__name__)


@pytest.fixture
def project_file(tmpdir):
    record = StorageProject.from_stack(make_stack(8, 6, count=2), id=7, timestamp=0)
    path = tmpdir.join("project.json")
    path.write(record.to_json())
    return path.strpath


@pytest.mark.parametrize(
    "argv",
    [
        ["export", "{input}", "{tmpdir}/output.png"],
        ["export", "{input}[0]", "{tmpdir}/output.png"],
        ["--verbose", "export", "{input}[1]", "{tmpdir}/output.png"],
        ["show", "{input}"],
        ["filter", "{input}", "invert", "{tmpdir}/output.json"],
    ],
)
def test_main(argv, project_file, tmpdir):
    argv = [arg.format(input=project_file, tmpdir=tmpdir.strpath) for arg in argv]
    assert main(argv) is None


@pytest.mark.parametrize("argv", [["-h"], ["--version"], ["filter"]])
def test_main_exits(argv):
    with pytest.raises(SystemExit):
        main(argv)


def test_export(project_file, tmpdir):
    output = tmpdir.join("output.png").strpath
    main(["export", project_file + "[0]", output])
    with Image.open(output) as image:
        assert image.mode == "RGBA"
        assert image.size == (8, 6)


def test_filter(project_file, tmpdir):
    output = tmpdir.join("output.json")
    main(["filter", project_file, "invert", output.strpath])

    before = StorageProject.from_json(tmpdir.join("project.json").read()).to_project()
    after = StorageProject.from_json(output.read())
    assert after.id == 7
    assert len(after.layers) == 2

    layers = after.to_project().layers
    # Only the top layer is inverted.
    assert (layers[0].image.to_rgba() == before.layers[0].image.to_rgba()).all()
    top, original = layers[1].image.to_rgba(), before.layers[1].image.to_rgba()
    assert (top[:, :, 3] == original[:, :, 3]).all()


def test_filter_needs_instant(project_file, tmpdir):
    output = tmpdir.join("output.json")
    assert main(["filter", project_file, "grayscale", output.strpath]) == 1
    assert not output.check()
