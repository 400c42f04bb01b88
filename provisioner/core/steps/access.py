"""
Access steps: administrative user management and SSH authorized keys.
"""

from __future__ import annotations

import logging

from provisioner.core.documents import sudoers
from provisioner.core.documents.authorized_keys import recognized_keys, validate_authorized_keys
from provisioner.core.errors import ExternalToolError, NoKeySourceError, UserResolutionError
from provisioner.core.steps.base import Step, StepContext, read_or_empty

logger = logging.getLogger(__name__)

ADMIN_GROUP = "sudo"
SSH_DIR_MODE = 0o700
KEYS_FILE_MODE = 0o600


class UserManagementStep(Step):
    """Create the admin user and install a passwordless sudo grant."""

    name = "User management"

    def applicable(self, ctx: StepContext) -> bool:
        return ctx.config.manage_user

    def skip_reason(self, ctx: StepContext) -> str:
        return "user management disabled (MANAGE_USER=false)"

    def satisfied(self, ctx: StepContext) -> bool:
        user = ctx.config.new_user
        accounts = ctx.adapters.accounts
        files = ctx.adapters.files
        grant = sudoers.grant_path(user)
        return (
            accounts.exists(user)
            and ADMIN_GROUP in accounts.groups(user)
            and read_or_empty(files, grant) == sudoers.render_grant(user)
            and files.mode_of(grant) == sudoers.GRANT_MODE
        )

    def apply(self, ctx: StepContext) -> str:
        user = ctx.config.new_user
        accounts = ctx.adapters.accounts

        if accounts.exists(user):
            logger.info("User %s already exists; skipping adduser", user)
        else:
            logger.info("Create user %s", user)
            accounts.create(user)

        accounts.add_to_group(user, ADMIN_GROUP)
        self._install_grant(ctx, user)
        return f"{user} in {ADMIN_GROUP} with NOPASSWD grant"

    def _install_grant(self, ctx: StepContext, user: str) -> None:
        """Validate before, stage, validate, move into place, validate after.

        A grant that fails validation is removed so sudo keeps working.
        """
        files = ctx.adapters.files
        accounts = ctx.adapters.accounts
        grant = sudoers.grant_path(user)
        staging = sudoers.staging_path(user)

        accounts.check_sudoers(sudoers.SUDOERS)

        files.write_text(staging, sudoers.render_grant(user), mode=sudoers.GRANT_MODE)
        try:
            accounts.check_sudoers(staging)
        except ExternalToolError:
            files.remove(staging)
            raise

        files.replace(staging, grant)
        files.chmod(grant, sudoers.GRANT_MODE)
        try:
            accounts.check_sudoers(sudoers.SUDOERS)
        except ExternalToolError:
            logger.error("sudo configuration invalid after installing %s; removing it", grant)
            files.remove(grant)
            raise

    def verify(self, ctx: StepContext) -> bool:
        user = ctx.config.new_user
        return (
            ctx.adapters.accounts.exists(user)
            and ADMIN_GROUP in ctx.adapters.accounts.groups(user)
            and ctx.adapters.files.mode_of(sudoers.grant_path(user)) == sudoers.GRANT_MODE
        )


class AuthorizedKeysStep(Step):
    """Populate ``~/.ssh/authorized_keys`` for the target user."""

    name = "Install authorized keys"

    def _paths(self, ctx: StepContext) -> tuple[str, str, str]:
        user = ctx.facts.target_user
        # the account may have been created by an earlier step
        home = ctx.facts.target_home or ctx.adapters.accounts.home_of(user)
        if not home:
            raise UserResolutionError(f"Cannot resolve home directory for user: {user}")
        ssh_dir = f"{home}/.ssh"
        return user, ssh_dir, f"{ssh_dir}/authorized_keys"

    def _load_keys(self, ctx: StepContext) -> tuple[str, str]:
        """Key data and a description of where it came from."""
        source = ctx.config.key_source
        if source.url:
            logger.info("Downloading authorized_keys from %s", source.describe())
            return ctx.adapters.keys.fetch(source.url), source.describe()

        local = ctx.facts.local_keys_file
        if local:
            logger.info("Copying local authorized_keys from: %s", local)
            return ctx.adapters.files.read_text(local), local

        raise NoKeySourceError(
            "No authorized_keys source found. Set GITHUB_KEYS_USER or "
            "AUTHORIZED_KEYS_URL, or ensure ~/.ssh/authorized_keys exists."
        )

    def apply(self, ctx: StepContext) -> str:
        files = ctx.adapters.files
        user, ssh_dir, target = self._paths(ctx)
        logger.info("Install authorized_keys for user: %s", user)

        files.mkdir(ssh_dir, mode=SSH_DIR_MODE)
        files.chmod(ssh_dir, SSH_DIR_MODE)

        content, origin = self._load_keys(ctx)
        count = validate_authorized_keys(content, origin)

        files.write_text(target, content, mode=KEYS_FILE_MODE)
        files.chmod(target, KEYS_FILE_MODE)
        files.chown(ssh_dir, user, recursive=True)
        return f"{count} key(s) for {user} from {origin}"

    def verify(self, ctx: StepContext) -> bool:
        files = ctx.adapters.files
        _, _, target = self._paths(ctx)
        return (
            files.is_file(target)
            and files.mode_of(target) == KEYS_FILE_MODE
            and bool(recognized_keys(files.read_text(target)))
        )
