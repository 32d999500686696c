"""
Trusted-peer bootstrap commands.

A node can only learn its own peer ID from inside its container: the admin
token and the ``p2p.Info`` RPC are local to the node. The commands below are
value objects describing what runs there. Each renders to an argv for the
command executor, but tests and the CLI can inspect their parameters without
running anything.

Cache file states:
    absent            -> never bootstrapped (or a previous run failed)
    "<prefix>/p2p/<id>" -> complete; Create returns it without touching the node

Create assembles the address in ``<cache>.tmp`` and renames it into place only
after the node ID has been appended, so a crash mid-sequence never leaves a
cache that passes the format check. Both Create and Bulk Append hold a
``flock`` on a sibling ``.lock`` file for their whole critical section.
"""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass

from peerlink.errors import BootstrapFailure, CommandFailed

TRUSTED_PEER_FILE = "/tmp/TP-ADDR"
TRUSTED_PEERS_DIR = "/home/celestia/config/"
TRUSTED_PEERS_FILE_NAME = "TRUSTED_PEERS"
TRUSTED_PEER_PREFIX = "/dns/$(hostname)/tcp/2121/p2p/"
NODE_RPC_URL = "http://localhost:26658"
AUTH_COMMAND = "celestia bridge auth admin --node.store /home/celestia"
P2P_INFO_REQUEST = '{"jsonrpc":"2.0","id":0,"method":"p2p.Info","params":[]}'

# Exit codes of the Create script, one per failing stage.
EXIT_CODES = {
    10: "token",
    11: "rpc",
    12: "node_id",
    13: "publish",
}

_ADDRESS_RE = re.compile(r"^(?P<prefix>\S*)/p2p/(?P<node_id>[^/\s]+)$")
_STAGE_RE = re.compile(r"bootstrap-error:\s*(?P<stage>\w+)")
# Shell-side twin of _ADDRESS_RE
_CACHE_PATTERN = "/p2p/[^/[:space:]]+$"


def _dq(value: str) -> str:
    """Double-quote for sh, leaving ``$(...)`` expansion intact."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("`", "\\`")
    return f'"{escaped}"'


def _cache_check(var: str) -> str:
    return f'[ -f "${var}" ] && grep -qE {shlex.quote(_CACHE_PATTERN)} "${var}"'


@dataclass(frozen=True)
class FetchTrustedPeer:
    """Print the cached trusted-peer address if a complete one exists."""

    cache_file: str = TRUSTED_PEER_FILE

    def script(self) -> str:
        return "\n".join(
            [
                "#!/bin/sh",
                f"CACHE={shlex.quote(self.cache_file)}",
                f"if {_cache_check('CACHE')}; then",
                '  cat "$CACHE"',
                "fi",
            ]
        )

    def argv(self) -> list[str]:
        return ["sh", "-c", self.script()]


@dataclass(frozen=True)
class CreateTrustedPeer:
    """Bootstrap the node's trusted-peer address at most once."""

    STEPS = (
        "check_cache",
        "write_prefix",
        "obtain_token",
        "query_node_id",
        "append_node_id",
        "publish_cache",
    )

    cache_file: str = TRUSTED_PEER_FILE
    address_prefix: str = TRUSTED_PEER_PREFIX
    auth_command: str = AUTH_COMMAND
    rpc_url: str = NODE_RPC_URL
    rpc_request: str = P2P_INFO_REQUEST

    @property
    def tmp_file(self) -> str:
        return f"{self.cache_file}.tmp"

    @property
    def lock_file(self) -> str:
        return f"{self.cache_file}.lock"

    def script(self) -> str:
        return "\n".join(
            [
                "#!/bin/sh",
                f"CACHE={shlex.quote(self.cache_file)}",
                f"TMP={shlex.quote(self.tmp_file)}",
                f"LOCK={shlex.quote(self.lock_file)}",
                "",
                "fail() {",
                '  rm -f "$TMP"',
                '  echo "bootstrap-error: $1" >&2',
                '  exit "$2"',
                "}",
                "",
                'exec 9>"$LOCK"',
                "flock 9",
                "",
                f"if {_cache_check('CACHE')}; then",
                '  cat "$CACHE"',
                "  exit 0",
                "fi",
                'rm -f "$CACHE" "$TMP"',
                "",
                f'printf "%s" {_dq(self.address_prefix)} > "$TMP"',
                "",
                f"RAW=$({self.auth_command}) || fail token 10",
                # the admin command may print warnings before the token
                "AUTHTOKEN=$(printf '%s' \"$RAW\" | tr -s '[:space:]' '\\n' | tail -n 1)",
                '[ -n "$AUTHTOKEN" ] || fail token 10',
                "",
                'RESP=$(wget -q --header="Authorization: Bearer $AUTHTOKEN" \\',
                '  --header="Content-Type: application/json" \\',
                f"  --post-data={shlex.quote(self.rpc_request)} \\",
                f"  --output-document - {shlex.quote(self.rpc_url)}) || fail rpc 11",
                "NODE_ID=$(printf '%s' \"$RESP\" | grep -o '\"ID\":\"[^\"]*\"' | head -n 1 \\",
                "  | sed 's/\"ID\":\"\\([^\"]*\\)\"/\\1/')",
                '[ -n "$NODE_ID" ] || fail node_id 12',
                "",
                'printf "%s" "$NODE_ID" >> "$TMP"',
                f"{_cache_check('TMP')} || fail publish 13",
                'mv -f "$TMP" "$CACHE" || fail publish 13',
                'cat "$CACHE"',
            ]
        )

    def argv(self) -> list[str]:
        return ["sh", "-c", self.script()]


@dataclass(frozen=True)
class BulkAppendTrustedPeer:
    """Append an address to the shared trusted-peers file unless present."""

    address: str
    peers_dir: str = TRUSTED_PEERS_DIR
    file_name: str = TRUSTED_PEERS_FILE_NAME
    separator: str = ","

    @property
    def peers_file(self) -> str:
        return f"{self.peers_dir.rstrip('/')}/{self.file_name}"

    @property
    def lock_file(self) -> str:
        return f"{self.peers_file}.lock"

    def script(self) -> str:
        return "\n".join(
            [
                "#!/bin/sh",
                f"DIR={shlex.quote(self.peers_dir)}",
                f"FILE={shlex.quote(self.peers_file)}",
                f"ADDR={shlex.quote(self.address)}",
                f"SEP={shlex.quote(self.separator)}",
                'mkdir -p "$DIR"',
                f"exec 9>{shlex.quote(self.lock_file)}",
                "flock 9",
                'touch "$FILE"',
                # whole entries only; one address may prefix another
                'if ! tr "$SEP" \'\\n\' < "$FILE" | grep -qxF -- "$ADDR"; then',
                '  if [ -s "$FILE" ]; then',
                '    printf "%s%s" "$SEP" "$ADDR" >> "$FILE"',
                "  else",
                '    printf "%s" "$ADDR" >> "$FILE"',
                "  fi",
                "fi",
                'cat "$FILE"',
            ]
        )

    def argv(self) -> list[str]:
        return ["sh", "-c", self.script()]


BootstrapCommand = FetchTrustedPeer | CreateTrustedPeer | BulkAppendTrustedPeer


@dataclass(frozen=True)
class TrustedPeerCommandBuilder:
    """Builds bootstrap commands sharing one set of paths and endpoints."""

    cache_file: str = TRUSTED_PEER_FILE
    peers_dir: str = TRUSTED_PEERS_DIR
    file_name: str = TRUSTED_PEERS_FILE_NAME
    address_prefix: str = TRUSTED_PEER_PREFIX
    auth_command: str = AUTH_COMMAND
    rpc_url: str = NODE_RPC_URL

    def fetch(self) -> FetchTrustedPeer:
        return FetchTrustedPeer(cache_file=self.cache_file)

    def create(self) -> CreateTrustedPeer:
        return CreateTrustedPeer(
            cache_file=self.cache_file,
            address_prefix=self.address_prefix,
            auth_command=self.auth_command,
            rpc_url=self.rpc_url,
        )

    def bulk_append(self, address: str, peers_dir: str | None = None) -> BulkAppendTrustedPeer:
        return BulkAppendTrustedPeer(
            address=address,
            peers_dir=peers_dir or self.peers_dir,
            file_name=self.file_name,
        )


def is_trusted_peer_address(value: str) -> bool:
    return _ADDRESS_RE.match(value.strip()) is not None


def parse_trusted_peer(output: str) -> str:
    """
    Extract the trusted-peer address from a Create/Fetch output.

    Raises BootstrapFailure when the last non-empty line is not a complete
    ``<prefix>/p2p/<id>`` address.
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if lines and _ADDRESS_RE.match(lines[-1]):
        return lines[-1]
    raise BootstrapFailure(
        f"Unexpected trusted peer output: {output.strip()!r}",
        stage=_stage_of(output),
        output=output,
    )


def _stage_of(output: str) -> str | None:
    match = _STAGE_RE.search(output)
    return match.group("stage") if match else None


def bootstrap_failure_from(error: CommandFailed) -> BootstrapFailure:
    """Turn a failed Create run into a typed failure naming the stage."""
    stage = _stage_of(error.output) or EXIT_CODES.get(error.exit_code or 0)
    detail = f" at stage '{stage}'" if stage else ""
    return BootstrapFailure(
        f"Trusted peer bootstrap failed{detail}: {error.message}",
        stage=stage,
        output=error.output,
    )
