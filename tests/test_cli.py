"""Command-line behaviour, exercised through typer's test runner."""
import pytest
from typer.testing import CliRunner

from cli.main import app
from shared.codes import ErrorCode

runner = CliRunner()


def _invoke(*args, input=None):
    return runner.invoke(app, list(args), input=input)


def test_version():
    result = _invoke("--version")
    assert result.exit_code == 0
    assert "grpcc 1.0.0" in result.output


def test_eval_with_single_service(proto_path):
    result = _invoke(
        "-p", proto_path("greeter.proto"),
        "-a", "localhost:50051",
        "-i",
        "-e", "print(services); print(type(client).__name__)",
    )
    assert result.exit_code == 0, result.output
    assert "['a.b.Greeter']" in result.output
    assert "ServiceClient" in result.output


def test_eval_calls_server(proto_path, greeter_server):
    result = _invoke(
        "-p", proto_path("greeter.proto"),
        "-a", greeter_server,
        "-i",
        "-e", "print(client.SayHello({'name': 'cli'}).message)",
    )
    assert result.exit_code == 0, result.output
    assert "Hello cli" in result.output


def test_missing_root_cert_is_fatal(proto_path, tmp_path):
    result = _invoke(
        "-p", proto_path("greeter.proto"),
        "-a", "localhost:50051",
        "--root-cert", str(tmp_path / "nope.pem"),
        "-e", "print('SCRIPT-RAN')",
    )
    assert result.exit_code == ErrorCode.CREDENTIAL_LOAD_ERROR
    assert "SCRIPT-RAN" not in result.output


@pytest.mark.parametrize(
    "args, code",
    [
        (["-p", "messages_only.proto", "-a", "localhost:1", "-e", "1"], ErrorCode.NO_SERVICE_FOUND),
        (["-p", "broken.proto", "-a", "localhost:1", "-e", "1"], ErrorCode.SCHEMA_LOAD_ERROR),
        (["-p", "greeter.proto", "-a", "localhost:1", "-i", "-e", "print("], ErrorCode.EVAL_COMPILE_ERROR),
        (["-p", "greeter.proto", "-a", "localhost:1", "-e", "1", "-x", "s.py"], ErrorCode.CONFIGURATION_ERROR),
        (["-p", "greeter.proto", "-e", "1"], ErrorCode.CONFIGURATION_ERROR),
        (["-p", "greeter.proto", "-a", "localhost:1", "-s", "nomatch", "-e", "1"], ErrorCode.SERVICE_SELECTION_ERROR),
        (["-p", "greeter.proto", "-a", "localhost:1", "-m", "-s", "Greeter", "-e", "1"], ErrorCode.SERVICE_SELECTION_ERROR),
    ],
)
def test_failures_map_to_exit_codes(proto_path, args, code):
    resolved = [proto_path(a) if a.endswith(".proto") else a for a in args]
    result = _invoke(*resolved)
    assert result.exit_code == code, result.output


def test_chooser_prompt_picks_service(proto_path):
    result = _invoke(
        "-p", proto_path("shop.proto"),
        "-a", "localhost:1",
        "-i",
        "-e", "print('picked', client.descriptor.full_name)",
        input="2\n",
    )
    assert result.exit_code == 0, result.output
    offered = [line.split(") ", 1)[1] for line in result.output.splitlines() if line.startswith("  2) ")]
    assert offered
    assert f"picked {offered[0]}" in result.output


def test_manual_mode_has_no_default_client(proto_path):
    result = _invoke(
        "-p", proto_path("shop.proto"),
        "-a", "localhost:1",
        "-i",
        "-m",
        "-e", "print('client' in globals(), len(services))",
    )
    assert result.exit_code == 0, result.output
    assert "False 2" in result.output


def test_exec_runs_script_file(proto_path, tmp_path):
    script = tmp_path / "script.py"
    script.write_text("print('from file', services[0])\n")
    result = _invoke(
        "-p", proto_path("greeter.proto"),
        "-a", "localhost:1",
        "-i",
        "-x", str(script),
    )
    assert result.exit_code == 0, result.output
    assert "from file a.b.Greeter" in result.output


def test_script_cannot_swallow_certificate_failure(proto_path, tmp_path):
    script = (
        "try:\n"
        f"    Client('a.b.Greeter', credentials={{'root_cert': {str(tmp_path / 'nope.pem')!r}}})\n"
        "except Exception as exc:\n"
        "    print('SURVIVED', type(exc).__name__)\n"
        "print('AFTER')\n"
    )
    result = _invoke(
        "-p", proto_path("greeter.proto"),
        "-a", "localhost:1",
        "-i",
        "-e", script,
    )
    assert result.exit_code == ErrorCode.CREDENTIAL_LOAD_ERROR
    assert "SURVIVED" not in result.output
    assert "AFTER" not in result.output
