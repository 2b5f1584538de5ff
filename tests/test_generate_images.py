import generate_images
from imagepack.archive import list_entries

from tests.conftest import make_image


def test_cli_writes_variants_and_zip(tmp_path):
    input_dir = tmp_path / "in"
    output_dir = tmp_path / "out"
    input_dir.mkdir()
    (input_dir / "logo.png").write_bytes(make_image("PNG", (50, 50)))
    zip_path = tmp_path / "bundle.zip"

    code = generate_images.main([str(input_dir), str(output_dir), "--zip", str(zip_path)])

    assert code == 0
    assert (output_dir / "gallery" / "logo-md.webp").exists()
    assert len(list_entries(zip_path.read_bytes())) == 28


def test_cli_without_images(tmp_path):
    input_dir = tmp_path / "in"
    input_dir.mkdir()
    assert generate_images.main([str(input_dir), str(tmp_path / "out")]) == 1


def test_cli_missing_input(tmp_path):
    assert generate_images.main([str(tmp_path / "nope"), str(tmp_path / "out")]) == 2
