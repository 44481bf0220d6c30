"""Tests for printing and PDF export."""

import asyncio

from PIL import Image

from photobooth.services.printer import PrintService


def _photo(tmp_path):
    path = tmp_path / "final.png"
    Image.new("RGB", (108, 192), (90, 20, 20)).save(path)
    return path


def test_print_file_sends_lp_job(settings, fake_runner, tmp_path) -> None:
    printer = PrintService(settings, runner=fake_runner)
    photo = _photo(tmp_path)

    async def run():
        result = await printer.print_file(photo)
        # Let the delayed cleanup fire
        await asyncio.sleep(0.05)
        return result

    result = asyncio.run(run())

    assert result.success is True
    assert result.file_path == str(photo)
    (args,) = fake_runner.calls
    assert args[:3] == ("lp", "-d", settings.printer_name)
    assert f"media={settings.print_media}" in args
    assert "landscape" in args
    assert args[-1].endswith("print-temp-final.png")
    assert not (tmp_path / "print-temp-final.png").exists()
    assert photo.exists()


def test_print_file_reports_lp_failure(settings, failing_runner, tmp_path) -> None:
    printer = PrintService(settings, runner=failing_runner)

    result = asyncio.run(printer.print_file(_photo(tmp_path)))

    assert result.success is False
    assert "printer or class does not exist" in result.error


def test_print_missing_file(settings, fake_runner, tmp_path) -> None:
    printer = PrintService(settings, runner=fake_runner)

    result = asyncio.run(printer.print_file(tmp_path / "nope.png"))

    assert result.success is False
    assert fake_runner.calls == []


def test_export_pdf_writes_page(settings, data_uri) -> None:
    printer = PrintService(settings)

    result = asyncio.run(printer.export_pdf(data_uri((108, 192))))

    assert result.success is True
    assert result.file_path.endswith(".pdf")
    with open(result.file_path, "rb") as f:
        assert f.read(4) == b"%PDF"


def test_export_pdf_rejects_bad_image(settings) -> None:
    result = asyncio.run(PrintService(settings).export_pdf("nope"))
    assert result.success is False
