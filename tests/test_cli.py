"""Tests for the command-line interface."""

import pytest

import xlsxcore.crypto
from xlsxcore.cli import main
from xlsxcore.crypto import OLE_IDENTIFIER
from xlsxcore.errors import InvalidPasswordError


@pytest.fixture
def encrypted_file(tmp_path):
    path = tmp_path / "book.xlsx"
    path.write_bytes(OLE_IDENTIFIER + b"\x00" * 504)
    return path


class TestInspect:
    """Test the inspect command."""

    def test_plain_file(self, tmp_path, capsys):
        """Test a zip package is reported as not encrypted."""
        path = tmp_path / "plain.xlsx"
        path.write_bytes(b"PK\x03\x04")

        main(["inspect", str(path)])

        assert "not encrypted" in capsys.readouterr().out

    def test_encrypted_file(self, encrypted_file, monkeypatch, capsys):
        """Test the mechanism of an encrypted file is printed."""
        monkeypatch.setattr(
            xlsxcore.crypto, "extract_parts", lambda raw: (b"\x04\x00\x04\x00", b"")
        )

        main(["inspect", str(encrypted_file)])

        assert "encrypted (agile)" in capsys.readouterr().out

    def test_missing_file(self, tmp_path, capsys):
        """Test a missing input exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            main(["inspect", str(tmp_path / "missing.xlsx")])

        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().out


class TestDecryptCommand:
    """Test the decrypt command."""

    def test_decrypt_writes_package(self, encrypted_file, tmp_path, monkeypatch, capsys):
        """Test the plain package is written to the output path."""
        calls = []

        def fake_decrypt(raw, password):
            calls.append(password)
            return b"PK\x03\x04data"

        monkeypatch.setattr(xlsxcore.crypto, "decrypt", fake_decrypt)
        output = tmp_path / "plain.xlsx"

        main(["decrypt", str(encrypted_file), str(output), "--password", "pw"])

        assert output.read_bytes() == b"PK\x03\x04data"
        assert calls == ["pw"]
        assert "Wrote 8 bytes" in capsys.readouterr().out

    def test_decrypt_failure(self, encrypted_file, tmp_path, monkeypatch, capsys):
        """Test decryption errors exit with status 1."""

        def fake_decrypt(raw, password):
            raise InvalidPasswordError("password verifier does not match")

        monkeypatch.setattr(xlsxcore.crypto, "decrypt", fake_decrypt)

        with pytest.raises(SystemExit) as exc_info:
            main(["decrypt", str(encrypted_file), str(tmp_path / "out.xlsx")])

        assert exc_info.value.code == 1
        assert "password verifier does not match" in capsys.readouterr().out

    def test_decrypt_plain_file(self, tmp_path):
        """Test a file that is not encrypted is refused."""
        path = tmp_path / "plain.xlsx"
        path.write_bytes(b"PK\x03\x04")

        with pytest.raises(SystemExit) as exc_info:
            main(["decrypt", str(path), str(tmp_path / "out.xlsx")])

        assert exc_info.value.code == 1

    def test_no_command(self):
        """Test running without a command prints help and fails."""
        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 1
