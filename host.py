import io
import logging
import os
import shlex
import socket
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Optional, Union

import paramiko
from paramiko import ssh_exception, ECDSAKey, Ed25519Key, RSAKey

from logger import logger


Command = Union[str, list[str]]


def default_key_paths() -> list[str]:
    home = os.environ.get("HOME", "/root")
    return [os.path.join(home, ".ssh/id_ed25519"), os.path.join(home, ".ssh/id_rsa")]


class Result:
    def __init__(self, out: str, err: str, returncode: int):
        self.out = out
        self.err = err
        self.returncode = returncode

    def __str__(self) -> str:
        return f"(returncode: {self.returncode}, error: {self.err.strip()})"

    def success(self) -> bool:
        return self.returncode == 0


class Login(ABC):
    def __init__(self, hostname: str, username: str) -> None:
        self._hostname = hostname
        self._username = username

    def _client(self) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        return client

    @abstractmethod
    def connect(self) -> paramiko.SSHClient:
        pass

    @abstractmethod
    def describe(self) -> str:
        pass


class KeyLogin(Login):
    def __init__(self, hostname: str, username: str, key_path: str) -> None:
        super().__init__(hostname, username)
        self._key_path = key_path
        with open(key_path) as f:
            key = f.read().strip()
        self._pkey = self._load_key(key)

    def _load_key(self, key: str) -> paramiko.PKey:
        for loader in (Ed25519Key, RSAKey, ECDSAKey):
            try:
                return loader.from_private_key(io.StringIO(key))
            except paramiko.SSHException:
                continue
        raise ValueError(f"Unsupported key type in {self._key_path}")

    def connect(self) -> paramiko.SSHClient:
        client = self._client()
        client.connect(self._hostname, username=self._username, pkey=self._pkey, look_for_keys=False, allow_agent=False)
        return client

    def describe(self) -> str:
        return f"key {self._key_path}"


class PasswordLogin(Login):
    def __init__(self, hostname: str, username: str, password: str) -> None:
        super().__init__(hostname, username)
        self._password = password

    def connect(self) -> paramiko.SSHClient:
        client = self._client()
        client.connect(self._hostname, username=self._username, password=self._password, look_for_keys=False, allow_agent=False)
        return client

    def describe(self) -> str:
        return "password"


class AgentLogin(Login):
    def connect(self) -> paramiko.SSHClient:
        client = self._client()
        client.connect(self._hostname, username=self._username, look_for_keys=True, allow_agent=True)
        return client

    def describe(self) -> str:
        return "ssh-agent"


class Host:
    """Runs commands either on this machine or on a remote one over SSH.

    Embedded cluster installs are verified on the VM itself, so every
    kubectl invocation goes through a Host rather than subprocess directly.
    """

    def __new__(cls, hostname: str) -> 'Host':
        if hostname not in host_instances:
            host_instances[hostname] = super().__new__(cls)
        return host_instances[hostname]

    def __init__(self, hostname: str):
        if getattr(self, "_initialized", False):
            return
        self._initialized = True
        self._hostname = hostname
        self._logins: list[Login] = []
        self._ssh: Optional[paramiko.SSHClient] = None
        self.sudo_needed = False

    def is_localhost(self) -> bool:
        return self._hostname in ("localhost", socket.gethostname())

    def hostname(self) -> str:
        return self._hostname

    def need_sudo(self) -> None:
        self.sudo_needed = True

    def ssh_connect(self, username: str, password: Optional[str] = None, *, key_paths: Optional[list[str]] = None, timeout: float = 600) -> None:
        assert not self.is_localhost()
        logins: list[Login] = []
        if password is not None:
            logins.append(PasswordLogin(self._hostname, username, password))
        for path in key_paths if key_paths is not None else default_key_paths():
            if not os.path.exists(path):
                continue
            try:
                logins.append(KeyLogin(self._hostname, username, path))
            except (paramiko.SSHException, ValueError) as e:
                logger.debug(f"Skipping unusable key {path}: {e}")
        logins.append(AgentLogin(self._hostname, username))
        self._logins = logins
        self._ssh_connect_looped(timeout)

    def _ssh_connect_looped(self, timeout: float = 600) -> None:
        if not self._logins:
            raise RuntimeError(f"No usable logins for {self._hostname}")

        methods = ", ".join(login.describe() for login in self._logins)
        logger.info(f"Connecting to {self._hostname} over SSH using {methods}")
        end_time = time.monotonic() + timeout
        while time.monotonic() < end_time:
            for login in self._logins:
                try:
                    self._ssh = login.connect()
                    logger.info(f"Logged in to {self._hostname} with {login.describe()}")
                    return
                except (ssh_exception.SSHException, ssh_exception.NoValidConnectionsError, socket.error, EOFError) as e:
                    logger.debug(f"{type(e).__name__}: {e} ({login.describe()} on {self._hostname})")
            time.sleep(10)

        raise ConnectionError(f"Failed to establish an SSH connection to {self._hostname}")

    def run(self, cmd: Command, log_level: int = logging.DEBUG, quiet: bool = False) -> Result:
        if isinstance(cmd, list):
            cmd = shlex.join(cmd)
        if self.sudo_needed:
            cmd = "sudo " + cmd

        if not quiet:
            logger.log(log_level, f"running command {cmd} on {self._hostname}")
        if self.is_localhost():
            ret = self._run_local(cmd)
        else:
            ret = self._run_remote(cmd)
        if not quiet:
            logger.log(log_level, ret)
        return ret

    def _run_local(self, cmd: str) -> Result:
        try:
            proc = subprocess.run(shlex.split(cmd), capture_output=True, env=os.environ.copy())
        except FileNotFoundError as e:
            return Result("", str(e), 127)
        return Result(proc.stdout.decode("utf-8", errors="replace"), proc.stderr.decode("utf-8", errors="replace"), proc.returncode)

    def _run_remote(self, cmd: str) -> Result:
        if self._ssh is None:
            raise RuntimeError(f"Not connected to {self._hostname}, call ssh_connect() first")
        while True:
            try:
                _, stdout, stderr = self._ssh.exec_command(cmd)
                out = stdout.read().decode("utf-8", errors="replace")
                err = stderr.read().decode("utf-8", errors="replace")
                return Result(out, err, stdout.channel.recv_exit_status())
            except (ssh_exception.SSHException, EOFError, socket.error) as e:
                logger.info(f"Connection to {self._hostname} lost ({e}), reconnecting...")
                self._ssh_connect_looped()

    def run_or_die(self, cmd: Command, retry: int = 0) -> Result:
        for attempt in range(retry + 1):
            ret = self.run(cmd)
            if ret.success():
                return ret
            logger.error(f"{cmd} failed (attempt {attempt + 1}/{retry + 1}): {ret.err.strip()}")
            if attempt < retry:
                time.sleep(5)
        logger.error_and_exit(f"Giving up on {cmd}")
        return ret

    def read_file(self, file_name: str) -> str:
        if self.is_localhost() and not self.sudo_needed:
            with open(file_name) as f:
                return f.read()
        ret = self.run(["cat", file_name])
        if not ret.success():
            raise OSError(f"Error reading {file_name} on {self._hostname}: {ret.err.strip()}")
        return ret.out

    def close(self) -> None:
        if self._ssh is not None:
            self._ssh.close()
            self._ssh = None


host_instances: dict[str, Host] = {}


def LocalHost() -> Host:
    return Host("localhost")


def RemoteHost(ip: str) -> Host:
    return Host(ip)
