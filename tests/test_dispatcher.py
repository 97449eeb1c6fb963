"""Tests for lenient and strict command dispatch."""

import pytest

from memsh.dispatcher import CommandRegistry, is_cwd_invocation
from memsh.exceptions import DispatchNotFoundError, ScriptFailureError
from tests.conftest import RecordingProgram, make_shell, take_output

HELLO_PROGRAM = '''
def main(shell, command, args):
    shell.print(f"Hello {args[0] if args else 'world'} from {command}")
'''


@pytest.fixture
def recorder():
    return RecordingProgram(["ls", "echo", "fail", "exit"])


@pytest.fixture
def rec_shell(vfs, config, output, recorder):
    return make_shell(vfs, config, output, [recorder])


class TestRegistry:
    def test_first_registration_wins(self):
        first = RecordingProgram(["ls"])
        second = RecordingProgram(["ls", "cat"])
        registry = CommandRegistry([first, second])
        assert registry.lookup("ls") is first
        assert registry.lookup("CAT") is second
        assert registry.names() == ["cat", "ls"]
        assert "nope" not in registry

    @pytest.mark.parametrize(
        "command,extension,expected",
        [
            ("./demo.msh", ".msh", True),
            ("./.msh", ".msh", False),
            ("demo.msh", ".msh", False),
            ("./tool.py", ".py", True),
        ],
    )
    def test_cwd_invocation(self, command, extension, expected):
        assert is_cwd_invocation(command, extension) is expected


class TestLenientDispatch:
    def test_blank_and_comment_lines_are_noops(self, rec_shell, recorder):
        for line in ["", "   ", "# note", "// note"]:
            result = rec_shell.dispatcher.dispatch(line)
            assert result.handled and result.ok
        assert recorder.calls == []

    def test_builtin_lookup_is_case_insensitive(self, rec_shell, recorder):
        rec_shell.dispatcher.dispatch("LS -l")
        assert recorder.calls == [("LS", ["-l"])]

    def test_alias_expands_before_lookup(self, rec_shell, recorder):
        rec_shell.environment.set_alias("ll", "ls -la")
        result = rec_shell.dispatcher.dispatch("ll /tmp")
        assert result.handled
        assert recorder.calls == [("ls", ["-la", "/tmp"])]

    def test_chained_aliases(self, rec_shell, recorder):
        rec_shell.environment.set_alias("l", "ll -h")
        rec_shell.environment.set_alias("ll", "ls -l")
        rec_shell.dispatcher.dispatch("l x")
        assert recorder.calls == [("ls", ["-l", "-h", "x"])]

    def test_self_referencing_alias_expands_once(self, rec_shell, recorder):
        rec_shell.environment.set_alias("ls", "ls -a")
        rec_shell.dispatcher.dispatch("ls")
        assert recorder.calls == [("ls", ["-a"])]

    def test_alias_cycle_terminates(self, rec_shell, recorder, output):
        rec_shell.environment.set_alias("a", "b")
        rec_shell.environment.set_alias("b", "a")
        result = rec_shell.dispatcher.dispatch("a")
        assert not result.handled
        assert isinstance(result.error, DispatchNotFoundError)
        assert "Command not found" in output.getvalue()

    def test_not_found(self, rec_shell, output):
        result = rec_shell.dispatcher.dispatch("frobnicate")
        assert not result.handled
        assert result.should_continue
        text = output.getvalue()
        assert "Command not found: frobnicate" in text
        assert "Hit Tab for available commands." in text

    def test_failure_result_passes_through(self, rec_shell):
        result = rec_shell.dispatcher.dispatch("fail")
        assert result.handled and not result.ok


class TestHostedPrograms:
    def test_path_fallback(self, rec_shell, vfs, output):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/hello.py", HELLO_PROGRAM)

        result = rec_shell.dispatcher.dispatch("hello Bob")
        assert result.ok
        assert "Hello Bob from hello" in output.getvalue()

    def test_path_order_first_match_wins(self, rec_shell, vfs, output):
        vfs.ensure_dir_path("/opt")
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/opt/who.py", "shell.print('opt')")
        vfs.write_file("/bin/who.py", "shell.print('bin')")
        rec_shell.environment.env.PATH = ["/missing", "/opt", "/bin"]

        assert rec_shell.dispatcher.resolve_script_on_path("who") == "/opt/who.py"
        rec_shell.dispatcher.dispatch("who")
        assert output.getvalue().splitlines()[0] == "opt"

    def test_commands_with_separator_are_not_path_candidates(self, rec_shell, vfs):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/hello.py", HELLO_PROGRAM)
        assert rec_shell.dispatcher.resolve_script_on_path("x/hello") is None

    def test_builtin_shadows_path_program(self, rec_shell, recorder, vfs, output):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/ls.py", "shell.print('from vfs')")
        rec_shell.dispatcher.dispatch("ls")
        assert recorder.calls == [("ls", [])]
        assert "from vfs" not in output.getvalue()

    def test_alias_to_path_program_reports_typed_name(self, rec_shell, vfs, output):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/hello.py", HELLO_PROGRAM)
        rec_shell.environment.set_alias("greet", "hello World")

        rec_shell.dispatcher.dispatch("greet")
        assert "Hello World from greet" in output.getvalue()

    def test_cwd_program(self, rec_shell, vfs, output):
        vfs.ensure_dir_path("/work")
        vfs.write_file("/work/tool.py", "shell.print('argv=' + ','.join(argv))")
        vfs.change_directory("/work")

        result = rec_shell.dispatcher.dispatch("./tool.py a b")
        assert result.ok
        assert "argv=a,b" in output.getvalue()

    def test_cwd_program_missing(self, rec_shell, output):
        result = rec_shell.dispatcher.dispatch("./nope.py")
        assert result.handled and not result.ok
        assert output.getvalue().startswith("exec: /nope.py")

    def test_main_returning_false_fails(self, rec_shell, vfs, output):
        vfs.write_file("/bad.py", "def main(shell, command, args):\n    return False\n")
        result = rec_shell.dispatcher.dispatch("./bad.py")
        assert not result.ok
        assert isinstance(result.error, ScriptFailureError)
        assert "Error executing ./bad.py" in output.getvalue()

    def test_raising_program_fails(self, rec_shell, vfs, output):
        vfs.write_file("/boom.py", "raise RuntimeError('kaboom')")
        result = rec_shell.dispatcher.dispatch("./boom.py")
        assert not result.ok
        assert isinstance(result.error, ScriptFailureError)
        assert isinstance(result.error.cause, RuntimeError)
        assert "Error executing ./boom.py: kaboom" in output.getvalue()

    def test_async_main_is_awaited(self, rec_shell, vfs, output):
        vfs.write_file(
            "/later.py",
            "async def main(shell, command, args):\n    shell.print('async done')\n",
        )
        assert rec_shell.dispatcher.dispatch("./later.py").ok
        assert "async done" in output.getvalue()

    def test_program_reads_input(self, rec_shell, vfs, output, scripted_input):
        rec_shell.input_fn = scripted_input
        scripted_input.lines.append("Alice")
        vfs.write_file(
            "/ask.py",
            "def main(shell, command, args):\n    shell.print('hi ' + shell.input('Name: '))\n",
        )
        rec_shell.dispatcher.dispatch("./ask.py")
        assert scripted_input.prompts == ["Name: "]
        assert "hi Alice" in output.getvalue()

    def test_path_script_commands(self, rec_shell, vfs):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/zeta.py", "")
        vfs.write_file("/bin/Alpha.PY", "")
        vfs.write_file("/bin/readme.md", "")
        assert rec_shell.dispatcher.path_script_commands() == ["Alpha", "zeta"]


class TestCommandScripts:
    def test_stops_at_first_failing_line(self, shell, vfs, output):
        vfs.write_file("/s.msh", "mkdir x\ncd nowhere\nmkdir y\n")
        take_output(output)

        result = shell.dispatcher.dispatch("./s.msh")
        assert result.handled and not result.ok
        assert vfs.is_folder("/x")
        assert not vfs.exists("/y")

        text = output.getvalue()
        assert "msh: stopped at ./s.msh:2" in text
        assert "msh: cd nowhere" in text

    def test_comments_and_blank_lines_skipped(self, shell, vfs):
        vfs.write_file("/s.msh", "# header\n\n// note\r\nmkdir q\r\n")
        assert shell.dispatcher.dispatch("./s.msh").ok
        assert vfs.is_folder("/q")

    def test_no_aliases_inside_scripts(self, shell, vfs, output):
        shell.environment.set_alias("mk", "mkdir")
        vfs.write_file("/s.msh", "mk z\n")
        result = shell.dispatcher.dispatch("./s.msh")
        assert not result.ok
        assert not vfs.exists("/z")
        assert "Command not found: mk" in output.getvalue()

    def test_no_path_fallback_inside_scripts(self, shell, vfs, output):
        vfs.ensure_dir_path("/bin")
        vfs.write_file("/bin/hello.py", HELLO_PROGRAM)
        vfs.write_file("/s.msh", "hello\n")
        take_output(output)

        result = shell.dispatcher.dispatch("./s.msh")
        assert not result.ok
        assert "Hello" not in output.getvalue()

    def test_scripts_may_run_programs_explicitly(self, shell, vfs, output):
        vfs.write_file("/hi.py", HELLO_PROGRAM)
        vfs.write_file("/s.msh", "./hi.py Ann\n")
        assert shell.dispatcher.dispatch("./s.msh").ok
        assert "Hello Ann from ./hi.py" in output.getvalue()

    def test_exit_stops_the_session(self, shell, vfs):
        vfs.write_file("/s.msh", "exit\nmkdir never\n")
        result = shell.dispatcher.dispatch("./s.msh")
        assert not result.should_continue
        assert not vfs.exists("/never")

    def test_missing_script(self, shell, output):
        result = shell.dispatcher.dispatch("./gone.msh")
        assert result.handled and not result.ok
        assert output.getvalue().startswith("exec: ./gone.msh")

    def test_recursive_script_terminates(self, shell, vfs):
        vfs.write_file("/loop.msh", "./loop.msh\n")
        result = shell.dispatcher.dispatch("./loop.msh")
        assert not result.ok
        assert isinstance(result.error, ScriptFailureError)

    def test_strict_dispatch_reports_unknown_command(self, shell):
        result = shell.dispatcher.dispatch_strict("nope", [])
        assert not result.handled and not result.ok
        assert isinstance(result.error, DispatchNotFoundError)

    def test_strict_dispatch_empty_command(self, shell):
        assert shell.dispatcher.dispatch_strict("", []).ok
