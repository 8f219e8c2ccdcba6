#!/usr/bin/env python
#
# Copyright (c) 2024-2025, Ryan Galloway (ryan@rsgalloway.com)
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
#  - Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
#  - Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
#  - Neither the name of the software nor the names of its contributors
#    may be used to endorse or promote products derived from this software
#    without specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
#

__doc__ = """
Contains tests for the util, install and logger modules.
"""

import logging
import os
import subprocess

import pytest

from depcache import logger, util
from depcache.errors import RemoveError
from depcache.install import NOT_FOUND_EXIT, CommandInstaller


def test_remove_object_file(tmp_path):
    f = tmp_path / "a.txt"
    f.write_text("x")
    assert util.remove_object(str(f)) is True
    assert not f.exists()


def test_remove_object_tree(tmp_path):
    d = tmp_path / "tree" / "sub"
    d.mkdir(parents=True)
    (d / "a.txt").write_text("x")
    assert util.remove_object(str(tmp_path / "tree")) is True
    assert not (tmp_path / "tree").exists()


def test_remove_object_link_keeps_target(tmp_path):
    target = tmp_path / "target"
    target.mkdir()
    link = tmp_path / "link"
    os.symlink(str(target), str(link))
    assert util.remove_object(str(link)) is True
    assert target.is_dir()


def test_remove_object_missing(tmp_path):
    assert util.remove_object(str(tmp_path / "missing")) is False


def test_remove_object_error(tmp_path, mocker):
    f = tmp_path / "a.txt"
    f.write_text("x")
    mocker.patch("depcache.util.os.remove", side_effect=PermissionError("denied"))
    with pytest.raises(RemoveError):
        util.remove_object(str(f))


def test_temp_path_for(tmp_path):
    dest = tmp_path / "cache" / "key.tgz"
    tmp = util.temp_path_for(str(dest))
    assert os.path.dirname(tmp) == str(tmp_path / "cache")
    assert os.path.exists(tmp)
    util.discard(tmp)
    assert not os.path.exists(tmp)
    util.discard(tmp)


def test_is_dangerous_root(tmp_path):
    assert util.is_dangerous_root("/")
    assert util.is_dangerous_root("/tmp")
    assert util.is_dangerous_root(os.path.expanduser("~"))
    assert not util.is_dangerous_root(str(tmp_path / "a" / "cache"))


def test_format_size():
    assert util.format_size(10) == "10 B"
    assert util.format_size(2048) == "2.0 KB"
    assert util.format_size(5 * 1024 * 1024) == "5.0 MB"


def test_command_installer_status(mocker):
    run = mocker.patch(
        "depcache.install.subprocess.run",
        return_value=subprocess.CompletedProcess(["npm", "install"], 3),
    )
    installer = CommandInstaller(cwd="/project")
    assert installer.install() == 3
    assert run.call_args[0][0] == ["npm", "install"]
    assert run.call_args.kwargs["cwd"] == "/project"


def test_command_installer_missing_executable(mocker):
    mocker.patch(
        "depcache.install.subprocess.run", side_effect=FileNotFoundError("npm")
    )
    assert CommandInstaller(["yarn", "install"]).install() == NOT_FOUND_EXIT


def test_resolve_level():
    assert logger.resolve_level(10) == "DEBUG"
    assert logger.resolve_level("30") == "WARNING"
    assert logger.resolve_level("error") == "ERROR"
    assert logger.resolve_level("bogus") == "INFO"


def test_setup_logging_replaces_handlers(tmp_path):
    before = list(logger.log.handlers)
    try:
        logger.setup_logging(logdir=str(tmp_path))
        logger.setup_logging(logdir=str(tmp_path))
        stream = [
            h
            for h in logger.log.handlers
            if type(h) is logging.StreamHandler and h.name == logger.log.name
        ]
        files = [
            h
            for h in logger.log.handlers
            if isinstance(h, logger.UserRotatingFileHandler)
        ]
        assert len(stream) == 1
        assert len(files) == 1
        assert (tmp_path / "depcache.log").exists()
    finally:
        for h in list(logger.log.handlers):
            if h not in before:
                logger.log.removeHandler(h)
                h.close()
