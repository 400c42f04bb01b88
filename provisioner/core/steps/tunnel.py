"""
WireGuard point-to-point tunnel steps.

Key material is generated once and reused on every later run; the
server config is never overwritten once it exists. The client config is
rewritten whenever its rendered content changes.
"""

from __future__ import annotations

import logging

from provisioner.core.documents.wireguard import client_config, server_config
from provisioner.core.steps.base import Step, StepContext, read_or_empty

logger = logging.getLogger(__name__)

KEY_DIR_MODE = 0o700
SECRET_MODE = 0o600


def _read_key(ctx: StepContext, path: str) -> str:
    return ctx.adapters.files.read_text(path).strip()


def _key_paths(ctx: StepContext) -> list[str]:
    t = ctx.config
    return [t.server_key_path, t.server_pub_path, t.client_key_path, t.client_pub_path]


class InstallWireGuardStep(Step):
    name = "Install WireGuard"

    def apply(self, ctx: StepContext) -> str:
        ctx.adapters.packages.update_index()
        ctx.adapters.packages.install(["wireguard"])
        return "wireguard installed"


class GenerateKeysStep(Step):
    """Server and client key pairs, each half only when missing."""

    name = "Generate key pairs"

    def satisfied(self, ctx: StepContext) -> bool:
        return all(ctx.adapters.files.is_file(p) for p in _key_paths(ctx))

    def apply(self, ctx: StepContext) -> str:
        files = ctx.adapters.files
        wg = ctx.adapters.wireguard
        t = ctx.config

        files.mkdir(t.wireguard_dir, mode=KEY_DIR_MODE)
        files.chmod(t.wireguard_dir, KEY_DIR_MODE)

        generated = []
        for private_path, public_path in (
            (t.server_key_path, t.server_pub_path),
            (t.client_key_path, t.client_pub_path),
        ):
            if not files.is_file(private_path):
                files.write_text(private_path, wg.genkey() + "\n", mode=SECRET_MODE)
                generated.append(private_path)
            if not files.is_file(public_path):
                files.write_text(public_path, wg.pubkey(_read_key(ctx, private_path)) + "\n", mode=SECRET_MODE)
                generated.append(public_path)

        for path in generated:
            logger.info("Generated %s", path)
        return f"generated {len(generated)} key file(s)"

    def verify(self, ctx: StepContext) -> bool:
        return self.satisfied(ctx)


class WriteServerConfigStep(Step):
    name = "Write server config"

    def satisfied(self, ctx: StepContext) -> bool:
        exists = ctx.adapters.files.is_file(ctx.config.server_config_path)
        if exists:
            logger.info("%s already exists; not overwriting", ctx.config.server_config_path)
        return exists

    def apply(self, ctx: StepContext) -> str:
        t = ctx.config
        doc = server_config(t, _read_key(ctx, t.server_key_path), _read_key(ctx, t.client_pub_path))
        ctx.adapters.files.write_text(t.server_config_path, doc.render(), mode=SECRET_MODE)
        return t.server_config_path

    def verify(self, ctx: StepContext) -> bool:
        return ctx.adapters.files.mode_of(ctx.config.server_config_path) == SECRET_MODE


class EnableTunnelStep(Step):
    name = "Enable tunnel service"

    def apply(self, ctx: StepContext) -> str:
        ctx.adapters.services.enable_now(ctx.config.service_unit)
        return f"{ctx.config.service_unit} enabled"

    def verify(self, ctx: StepContext) -> bool:
        return ctx.adapters.services.is_active(ctx.config.service_unit)


class WriteClientConfigStep(Step):
    name = "Write client config"

    def _render(self, ctx: StepContext) -> str:
        t = ctx.config
        return client_config(t, _read_key(ctx, t.client_key_path), _read_key(ctx, t.server_pub_path)).render()

    def satisfied(self, ctx: StepContext) -> bool:
        files = ctx.adapters.files
        path = ctx.config.client_config_path
        needed = (path, ctx.config.client_key_path, ctx.config.server_pub_path)
        if not all(files.is_file(p) for p in needed):
            return False
        return read_or_empty(files, path) == self._render(ctx)

    def apply(self, ctx: StepContext) -> str:
        path = ctx.config.client_config_path
        ctx.adapters.files.write_text(path, self._render(ctx), mode=SECRET_MODE)
        return path

    def verify(self, ctx: StepContext) -> bool:
        return ctx.adapters.files.mode_of(ctx.config.client_config_path) == SECRET_MODE
