import io

import pytest
from colorama import Fore

from revbisect.log import LIVE_LINE
from revbisect.progress import ProgressBar, format_elapsed


class Clock(object):
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.parametrize(
    "seconds,text", [(0, "00:00:00"), (59.9, "00:00:59"), (61, "00:01:01"), (3725, "01:02:05")]
)
def test_format_elapsed(seconds, text):
    assert format_elapsed(seconds) == text


@pytest.fixture
def bar():
    clock = Clock()
    output = io.StringIO()
    return ProgressBar(4, output=output, width=10, allow_color=False, clock=clock), clock, output


def test_render_start(bar):
    progress, _, output = bar
    progress.start()
    assert output.getvalue() == "\r[00:00:00] [>---------] 0/4 (eta ?)"
    assert progress.eta() is None


def test_render_update(bar):
    progress, clock, output = bar
    progress.start()
    clock.now += 10
    progress.update(2)
    assert progress.elapsed() == 10
    assert progress.eta() == 10
    assert output.getvalue().endswith("\r[00:00:10] [#####>----] 2/4 (eta 10.0s)")


def test_finish(bar):
    progress, clock, output = bar
    progress.start()
    clock.now += 3
    progress.update(4)
    progress.finish("Found! abc")
    assert output.getvalue().endswith("\r[00:00:03] [##########] 4/4 (eta 0.0s) Found! abc\n")
    # nothing is written once finished
    progress.update(1)
    assert output.getvalue().endswith("Found! abc\n")


def test_empty_budget():
    output = io.StringIO()
    progress = ProgressBar(0, output=output, width=4, allow_color=False)
    progress.finish()
    assert output.getvalue().startswith("\r[")
    assert "[####] 0/0" in output.getvalue()


def test_color():
    output = io.StringIO()
    progress = ProgressBar(2, output=output, allow_color=True)
    progress.start()
    assert Fore.GREEN in output.getvalue()


def test_write_error_disables_progress(mocker):
    output = mocker.Mock()
    output.write.side_effect = IOError("broken pipe")
    progress = ProgressBar(2, output=output, allow_color=False)
    progress.start()
    assert not progress.enabled
    progress.update(1)
    assert output.write.call_count == 1


def test_live_line_follows_progress(bar):
    progress, clock, output = bar
    progress.start()
    assert LIVE_LINE.stream is output
    assert LIVE_LINE.text == "[00:00:00] [>---------] 0/4 (eta ?)"
    clock.now += 2
    progress.update(1)
    assert LIVE_LINE.text.startswith("[00:00:02] [##>-------] 1/4")
    progress.finish("Found! abc")
    assert LIVE_LINE.stream is None
    assert LIVE_LINE.text == ""


def test_write_error_hides_live_line(mocker):
    output = mocker.Mock()
    output.write.side_effect = [None, IOError("broken pipe")]
    progress = ProgressBar(2, output=output, allow_color=False)
    progress.start()
    assert LIVE_LINE.stream is output
    progress.update(1)
    assert not progress.enabled
    assert LIVE_LINE.stream is None
