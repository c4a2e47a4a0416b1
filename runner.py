#
# runner.py - run the GPFS administrative commands with a deadline
#
import os
import subprocess
from logging import getLogger

log = getLogger(__name__)

MMFS_BIN = "/usr/lpp/mmfs/bin"


class DeadlineExceeded(Exception):
    """ the command did not finish before its deadline; the child was killed """
    def __init__(self, argv, timeout):
        self.argv = argv
        self.timeout = timeout
        super().__init__(f"timeout after {timeout}s executing {' '.join(argv)}")


class CommandFailed(Exception):
    """ nonzero exit, signal, or the command could not be started """
    def __init__(self, argv, message, returncode=None):
        self.argv = argv
        self.returncode = returncode
        super().__init__(f"{' '.join(argv)}: {message}")


class CommandRunner(object):
    """
    The single seam between the collectors and the filesystem's binaries.

    run() returns stdout on exit 0, raises DeadlineExceeded when the deadline
    elapsed (partial output is dropped) and CommandFailed otherwise.
    """
    def __init__(self, sudo="sudo", bindir=MMFS_BIN):
        self.sudo = sudo
        self.bindir = bindir

    def argv(self, command, args):
        if not os.path.isabs(command):
            command = os.path.join(self.bindir, command)
        argv = [command] + list(args)
        if self.sudo:
            argv.insert(0, self.sudo)
        return argv

    def run(self, command, args, timeout, stdin=None):
        argv = self.argv(command, args)
        log.debug(f"running {argv} timeout={timeout}")
        try:
            # subprocess.run() kills the child when the timeout expires
            proc = subprocess.run(argv, input=stdin, stdout=subprocess.PIPE, stderr=subprocess.PIPE,
                                  universal_newlines=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise DeadlineExceeded(argv, timeout)
        except OSError as exc:
            raise CommandFailed(argv, f"unable to execute: {exc}") from exc

        if proc.returncode != 0:
            stderr = proc.stderr.strip()
            raise CommandFailed(argv, f"exit status {proc.returncode} {stderr}".strip(), proc.returncode)
        return proc.stdout
