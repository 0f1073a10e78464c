"""Tests for failure classification and the retry loop."""

import errno
import imaplib
import socket
import ssl

import pytest
from imapclient.exceptions import IMAPClientAbortError, IMAPClientError, LoginError

from imap_session_lib import (
    FailureKind,
    NoSupportedAuthMethod,
    NotAuthenticated,
    NotConnected,
    RetryPolicy,
    Session,
    SessionOptions,
    SessionState,
    classify,
)

from .conftest import URI


def cert_error():
    return ssl.SSLCertVerificationError(1, "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed")


class TestClassify:

    @pytest.mark.parametrize("error", [
        ConnectionAbortedError(),
        ConnectionRefusedError(),
        ConnectionResetError(),
        BrokenPipeError(),
        TimeoutError(),
        socket.timeout("timed out"),
        socket.gaierror(-2, "Name or service not known"),
        ssl.SSLError(1, "[SSL: WRONG_VERSION_NUMBER] wrong version number"),
        IMAPClientAbortError("command: LOGOUT => socket error: EOF"),
        imaplib.IMAP4.abort("BYE Server shutting down"),
        OSError("generic I/O failure"),
        OSError(errno.ENOTCONN, "Transport endpoint is not connected"),
        OSError(errno.EIO, "Input/output error"),
    ])
    def test_transient(self, error):
        assert classify(error) is FailureKind.TRANSIENT

    @pytest.mark.parametrize("error", [
        cert_error(),
        ssl.SSLError(1, "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed (_ssl.c:1006)"),
    ])
    def test_trust(self, error):
        assert classify(error) is FailureKind.TRUST

    @pytest.mark.parametrize("error", [
        ValueError("bad"),
        FileNotFoundError(errno.ENOENT, "No such file", "/etc/ca.pem"),
        NotConnected("not connected"),
        NotAuthenticated("not authenticated"),
        NoSupportedAuthMethod(["PLAIN"]),
        IMAPClientError("select failed: NO Mailbox doesn't exist"),
        LoginError("LOGIN failed"),
    ])
    def test_fatal(self, error):
        assert classify(error) is FailureKind.FATAL


def test_linear_backoff():
    policy = RetryPolicy(max_retries=3, base_delay=1.5)
    assert [policy.delay(n) for n in (1, 2, 3)] == [1.5, 3.0, 4.5]
    assert not policy.exhausted(3)
    assert policy.exhausted(4)


class Flaky:
    """A unit of work failing with the given errors before succeeding."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return ("done", args, kwargs)


class TestSafely:

    @pytest.fixture
    def session(self, server):
        return Session(URI, SessionOptions(max_retries=3), connector=server.connect)

    def test_success(self, session, server, no_sleep):
        work = Flaky()
        assert session.safely(work, 1, key="value") == ("done", (1,), {"key": "value"})
        assert work.calls == 1
        assert no_sleep == []
        assert server.command_names() == ["connect", "capability", "authenticate", "capability", "select"]

    def test_transient_error_reestablishes_session(self, session, server, no_sleep):
        work = Flaky(ConnectionResetError("reset by peer"))
        assert session.safely(work)[0] == "done"
        assert work.calls == 2
        assert no_sleep == [1]
        assert len(server.connections) == 2
        assert server.command_names() == [
            "connect", "capability", "authenticate", "capability", "select",
            "connect", "capability", "authenticate", "capability", "select",
        ]
        assert session.state is SessionState.MAILBOX_OPEN
        assert session.mailbox == "INBOX"
        assert session._conn is server.connections[-1]

    def test_backoff_is_linear(self, session, no_sleep):
        work = Flaky(BrokenPipeError(), TimeoutError(), IMAPClientAbortError("BYE"))
        session.safely(work)
        assert work.calls == 4
        assert no_sleep == [1, 2, 3]

    def test_retry_delay_option(self, server, no_sleep):
        session = Session(URI, SessionOptions(max_retries=2, retry_delay=0.5), connector=server.connect)
        session.safely(Flaky(OSError("eof"), OSError("eof")))
        assert no_sleep == [0.5, 1.0]

    def test_gives_up_after_max_retries(self, session, no_sleep):
        errors = [ConnectionResetError(f"reset {n}") for n in range(4)]
        work = Flaky(*errors)
        with pytest.raises(ConnectionResetError) as excinfo:
            session.safely(work)
        assert excinfo.value is errors[-1]
        assert work.calls == 4
        assert no_sleep == [1, 2, 3]
        assert "gave up after 3 retries" in excinfo.value.__notes__

    def test_zero_retries(self, server, no_sleep):
        session = Session(URI, SessionOptions(max_retries=0), connector=server.connect)
        with pytest.raises(ConnectionResetError):
            session.safely(Flaky(ConnectionResetError()))
        assert no_sleep == []

    def test_certificate_failure_is_never_retried(self, session, no_sleep):
        work = Flaky(cert_error())
        with pytest.raises(ssl.SSLCertVerificationError) as excinfo:
            session.safely(work)
        assert work.calls == 1
        assert no_sleep == []
        assert "TLS certificate verification failed; not retried" in excinfo.value.__notes__

    def test_certificate_failure_while_connecting(self, server, session, no_sleep):
        server.connect_errors.append(
            ssl.SSLError(1, "[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed")
        )
        work = Flaky()
        with pytest.raises(ssl.SSLError):
            session.safely(work)
        assert work.calls == 0
        assert len(server.connect_kwargs) == 1

    def test_connect_failure_is_retried(self, server, session, no_sleep):
        server.connect_errors.append(ConnectionRefusedError())
        work = Flaky()
        session.safely(work)
        assert work.calls == 1
        assert no_sleep == [1]
        assert len(server.connections) == 1

    @pytest.mark.parametrize("error", [
        ValueError("bug in the unit of work"),
        IMAPClientError("search failed: BAD Invalid search"),
        NotAuthenticated("not authenticated"),
    ])
    def test_fatal_errors_propagate_at_once(self, session, no_sleep, error):
        work = Flaky(error)
        with pytest.raises(type(error)) as excinfo:
            session.safely(work)
        assert excinfo.value is error
        assert work.calls == 1
        assert no_sleep == []

    def test_auth_exhaustion_is_not_retried(self, server, session, no_sleep):
        server.accept = set()
        work = Flaky()
        with pytest.raises(NoSupportedAuthMethod) as excinfo:
            session.safely(work)
        assert excinfo.value.tried == ["CRAM-MD5", "LOGIN", "PLAIN"]
        assert len(server.connections) == 1
        assert work.calls == 0

    def test_restores_last_selected_mailbox(self, server, session, no_sleep):
        server.mailboxes.add(b"Archive")
        session.safely(session.select, "Archive")
        session.safely(Flaky(ConnectionResetError()))
        assert server.commands("select")[-1] == ("select", b"Archive")
        assert session.mailbox == "Archive"

    def test_read_only_session_reexamines(self, server, no_sleep):
        session = Session(URI, SessionOptions(read_only=True), connector=server.connect)
        session.safely(Flaky(socket.timeout("timed out")))
        assert server.commands("examine", "select") == [("examine", b"INBOX"), ("examine", b"INBOX")]

    def test_logs_retries(self, session, no_sleep, caplog):
        session.safely(Flaky(ConnectionResetError("reset by peer")))
        assert "retry 1/3" in caplog.text


def test_safely_passes_every_keyword_to_the_work(server, no_sleep):
    session = Session(URI, SessionOptions(), connector=server.connect)
    work = Flaky(ConnectionResetError())
    result = session.safely(work, 7, sleep=5, logger="x")
    assert result == ("done", (7,), {"sleep": 5, "logger": "x"})
    assert no_sleep == [1]
