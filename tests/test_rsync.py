"""Tests for rsync command building and stats parsing."""

from pv_migrate.core.rsync import build_rsync_args, parse_rsync_stats
from pv_migrate.core.strategies.rsync_ssh import build_ssh_command
from tests.fakes import RSYNC_STATS_OUTPUT


class TestBuildRsyncArgs:
    def test_local_copy(self):
        assert build_rsync_args("/source", "/dest/") == [
            "rsync",
            "-av",
            "--stats",
            "/source/",
            "/dest/",
        ]

    def test_trailing_slash_not_doubled(self):
        assert build_rsync_args("/source/", "/dest/")[-2] == "/source/"

    def test_delete_and_remote_shell(self):
        args = build_rsync_args(
            "/source", "root@$(SSHD_ADDRESS):/dest/", delete=True, ssh_command="ssh -i key"
        )

        assert args == [
            "rsync",
            "-av",
            "--stats",
            "--delete",
            "-e",
            "ssh -i key",
            "/source/",
            "root@$(SSHD_ADDRESS):/dest/",
        ]


def test_ssh_command_uses_mounted_key_without_host_checks():
    command = build_ssh_command()

    assert command.startswith("ssh -i /etc/pv-migrate/ssh/id_rsa")
    assert "StrictHostKeyChecking=no" in command
    assert "UserKnownHostsFile=/dev/null" in command


class TestParseRsyncStats:
    def test_parses_summary(self):
        stats = parse_rsync_stats(RSYNC_STATS_OUTPUT)

        assert stats == {
            "files_transferred": 2,
            "total_size": 2048,
            "transfer_rate": "4,734.00 bytes/sec",
            "speedup": 0.87,
        }

    def test_defaults_for_unrecognized_output(self):
        assert parse_rsync_stats("rsync: connection unexpectedly closed") == {
            "files_transferred": 0,
            "total_size": 0,
            "transfer_rate": "",
            "speedup": 1.0,
        }

    def test_large_counts(self):
        output = "Number of regular files transferred: 1,234\nTotal transferred file size: 9,876,543 bytes\n"

        stats = parse_rsync_stats(output)

        assert stats["files_transferred"] == 1234
        assert stats["total_size"] == 9876543
