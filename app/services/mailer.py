"""Named sender accounts and SMTP delivery."""
import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.mime.text import MIMEText
from email.utils import formatdate

from app.core.config import SMTP_HOST, SMTP_PORT, SMTP_TIMEOUT, get_mail_accounts

logger = logging.getLogger(__name__)


class MailError(Exception):
    pass


class NoMailAccountError(MailError):
    pass


@dataclass(frozen=True)
class MailAccount:
    type: str
    address: str
    password: str


class Mailer:
    def __init__(
        self,
        accounts: list[MailAccount],
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        timeout: int = SMTP_TIMEOUT,
    ):
        self.accounts = accounts
        self.host = host
        self.port = port
        self.timeout = timeout

    def account_by_type(self, account_type: str) -> MailAccount:
        for account in self.accounts:
            if account.type == account_type:
                return account
        raise NoMailAccountError(f"No mail account configured for type '{account_type}'.")

    def account_by_address(self, address: str) -> MailAccount:
        for account in self.accounts:
            if account.address == address:
                return account
        raise NoMailAccountError(f"No mail account configured for address '{address}'.")

    def send(
        self,
        account_id: str,
        to: list[str],
        bcc: list[str] | None = None,
        reply_to: str | None = None,
        subject: str = "",
        body: str = "",
    ) -> bool:
        """Send a plain text mail from the account with address ``account_id``."""
        account = self.account_by_address(account_id)
        bcc = bcc or []

        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = account.address
        msg["To"] = ", ".join(to)
        msg["Date"] = formatdate(localtime=True)
        if reply_to:
            msg["Reply-To"] = reply_to

        try:
            server = self._connect(account)
            try:
                server.sendmail(account.address, to + bcc, msg.as_string())
            finally:
                server.quit()
        except (smtplib.SMTPException, OSError) as e:
            raise MailError(f"Sending mail via {account.address} failed: {e}") from e

        logger.info("Mail '%s' sent via %s", subject, account.address)
        return True

    def check_connectivity(self) -> list[str]:
        """Log in with every account, return the failures."""
        errors = []
        for account in self.accounts:
            try:
                self._connect(account).quit()
            except (smtplib.SMTPException, OSError) as e:
                errors.append(f"Testing connection of {account.address} failed: {e}")
        return errors

    def _connect(self, account: MailAccount) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, context=context, timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            server.starttls(context=context)
        server.login(account.address, account.password)
        return server


def get_mailer() -> Mailer:
    return Mailer([MailAccount(**entry) for entry in get_mail_accounts()])
