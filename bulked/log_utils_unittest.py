import unittest
from unittest.mock import patch

from bulked import log_utils


@patch.object(log_utils, "console")
class TestLogUtils(unittest.TestCase):
    def tearDown(self):
        log_utils.set_verbose(False)

    def test_debug_only_when_verbose(self, console):
        log_utils.debug("hidden")
        console.print.assert_not_called()
        log_utils.set_verbose(True)
        log_utils.debug("shown")
        console.print.assert_called_once_with("[dim]shown[/dim]")

    def test_error_and_warning_prefixes(self, console):
        log_utils.error("bad")
        log_utils.warning("careful")
        console.print.assert_any_call("[bold red]Error: bad[/bold red]")
        console.print.assert_any_call("[yellow]Warning: careful[/yellow]")

    def test_markup_in_messages_is_escaped(self, console):
        log_utils.info("list[bold]")
        console.print.assert_called_once_with("list\\[bold]")


if __name__ == "__main__":
    unittest.main()
