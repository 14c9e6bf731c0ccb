"""
Tests for the request guard chain.
"""

import pytest

from ledtech.security.errors import AuthenticationError, AuthorizationError, InternalError
from ledtech.security.guard import Guard, GuardContext, allow_ips, block_ips, require_csrf
from ledtech.security.permissions import Permission, Role
from ledtech.security.tokens import Identity


@pytest.fixture
def guard(services):
    return services.guard


@pytest.fixture
def audit(services):
    return services.audit


def bearer(services, user_id, role, email=None):
    token = services.tokens.generate_token(
        Identity(user_id=user_id, email=email or f"{role.value}@ledtech.com", role=role)
    )
    return {"Authorization": f"Bearer {token}"}


class TestAuthentication:
    async def test_bearer_token(self, guard, services, request_factory):
        request = request_factory(headers=bearer(services, "user_editor", Role.EDITOR))

        ctx = await guard.auth_chain().run(request)

        assert ctx.identity.user_id == "user_editor"
        assert ctx.user.email == "editor@ledtech.com"
        assert ctx.ip == "10.0.0.1"

    async def test_cookie_token(self, guard, services, request_factory):
        token = services.tokens.generate_token(
            Identity(user_id="user_viewer", email="viewer@ledtech.com", role=Role.VIEWER)
        )
        request = request_factory(cookies={"auth_token": token})

        ctx = await guard.auth_chain().run(request)

        assert ctx.user.id == "user_viewer"

    async def test_header_wins_over_cookie(self, guard, services, request_factory):
        cookie_token = services.tokens.generate_token(
            Identity(user_id="user_viewer", email="viewer@ledtech.com", role=Role.VIEWER)
        )
        request = request_factory(
            headers=bearer(services, "user_admin", Role.ADMIN),
            cookies={"auth_token": cookie_token},
        )

        ctx = await guard.auth_chain().run(request)

        assert ctx.user.id == "user_admin"

    async def test_missing_token(self, guard, audit, request_factory):
        with pytest.raises(AuthenticationError) as exc_info:
            await guard.auth_chain().run(request_factory(path="/api/auth/me"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers["WWW-Authenticate"] == "Bearer"

        entry = audit.get_logs()[-1]
        assert entry.action == "AUTHENTICATION_FAILED"
        assert entry.success is False
        assert entry.resource == "/api/auth/me"
        assert entry.details["status"] == 401
        assert entry.details["step"] == "authenticate"

    async def test_invalid_token(self, guard, request_factory):
        request = request_factory(headers={"Authorization": "Bearer not-a-token"})

        with pytest.raises(AuthenticationError, match="Invalid or expired token"):
            await guard.auth_chain().run(request)

    async def test_session_id_rejected_as_token(self, guard, services, request_factory):
        session_id = services.sessions.create_session("user_admin")
        request = request_factory(headers={"Authorization": f"Bearer {session_id}"})

        with pytest.raises(AuthenticationError):
            await guard.auth_chain().run(request)

    async def test_deleted_user(self, guard, services, request_factory):
        request = request_factory(headers=bearer(services, "ghost", Role.ADMIN))

        with pytest.raises(AuthenticationError, match="User no longer exists"):
            await guard.auth_chain().run(request)

    async def test_inactive_user(self, guard, services, audit, request_factory):
        request = request_factory(headers=bearer(services, "user_inactive", Role.EDITOR))

        with pytest.raises(AuthorizationError, match="Account is deactivated"):
            await guard.auth_chain().run(request)

        entry = audit.get_logs()[-1]
        assert entry.action == "ACCESS_DENIED"
        assert entry.user_id == "user_inactive"


class TestAuthorization:
    async def test_permission_granted(self, guard, services, request_factory):
        request = request_factory(headers=bearer(services, "user_editor", Role.EDITOR))

        ctx = await guard.with_permission(Permission.PRODUCT_CREATE).run(request)

        assert ctx.user.role is Role.EDITOR

    async def test_permission_denied(self, guard, services, audit, request_factory):
        request = request_factory(headers=bearer(services, "user_viewer", Role.VIEWER))

        with pytest.raises(AuthorizationError, match="Insufficient permissions"):
            await guard.with_permission(Permission.PRODUCT_DELETE).run(request)

        entry = audit.get_logs()[-1]
        assert entry.action == "ACCESS_DENIED"
        assert entry.user_id == "user_viewer"
        assert entry.details["step"] == "require_permission"

    async def test_any_permission(self, guard, services, request_factory):
        required = [Permission.PRODUCT_CREATE, Permission.USER_DELETE]

        editor = request_factory(headers=bearer(services, "user_editor", Role.EDITOR))
        await guard.with_any_permission(required).run(editor)

        viewer = request_factory(headers=bearer(services, "user_viewer", Role.VIEWER))
        with pytest.raises(AuthorizationError):
            await guard.with_any_permission(required).run(viewer)

    async def test_all_permissions(self, guard, services, request_factory):
        required = [Permission.PRODUCT_CREATE, Permission.USER_DELETE]

        admin = request_factory(headers=bearer(services, "user_admin", Role.ADMIN))
        await guard.with_all_permissions(required).run(admin)

        manager = request_factory(headers=bearer(services, "user_manager", Role.MANAGER))
        with pytest.raises(AuthorizationError):
            await guard.with_all_permissions(required).run(manager)

    async def test_role(self, guard, services, request_factory):
        manager = request_factory(headers=bearer(services, "user_manager", Role.MANAGER))
        await guard.with_role([Role.ADMIN, Role.MANAGER]).run(manager)

        editor = request_factory(headers=bearer(services, "user_editor", Role.EDITOR))
        with pytest.raises(AuthorizationError, match="Insufficient role permissions"):
            await guard.with_role([Role.ADMIN, Role.MANAGER]).run(editor)

    async def test_token_role_is_authoritative(self, guard, services, request_factory):
        """A token minted with a lower role keeps that role."""
        request = request_factory(
            headers=bearer(services, "user_admin", Role.VIEWER, email="admin@ledtech.com")
        )

        with pytest.raises(AuthorizationError):
            await guard.with_permission(Permission.SYSTEM_CONFIG).run(request)


class TestGuardComposition:
    async def test_then_returns_new_guard(self, guard):
        base = guard.auth_chain()
        extended = base.then(guard.require_permission(Permission.SYSTEM_LOGS))

        assert len(base.steps) == 2
        assert len(extended.steps) == 3

    async def test_steps_run_in_order(self, audit, request_factory):
        calls = []

        async def first(ctx: GuardContext) -> GuardContext:
            calls.append("first")
            return ctx

        async def second(ctx: GuardContext) -> GuardContext:
            calls.append("second")
            raise AuthorizationError("stop here")

        async def third(ctx: GuardContext) -> GuardContext:
            calls.append("third")
            return ctx

        with pytest.raises(AuthorizationError):
            await Guard([first, second, third], audit).run(request_factory())

        assert calls == ["first", "second"]

    async def test_unexpected_error_becomes_internal(self, audit, request_factory):
        async def broken(ctx: GuardContext) -> GuardContext:
            raise RuntimeError("database exploded")

        with pytest.raises(InternalError) as exc_info:
            await Guard([broken], audit).run(request_factory())

        assert exc_info.value.to_dict() == {"success": False, "error": "Internal server error"}
        assert audit.get_logs()[-1].action == "GUARD_ERROR"

    async def test_wrapped_handler(self, guard, services, request_factory):
        async def handler(request, user, suffix):
            return f"{user.id}{suffix}"

        wrapped = guard.with_permission(Permission.PRODUCT_READ)(handler)
        request = request_factory(headers=bearer(services, "user_viewer", Role.VIEWER))

        assert await wrapped(request, "!") == "user_viewer!"

    async def test_with_auth_blocks_handler(self, guard, request_factory):
        called = False

        async def handler(request, user):
            nonlocal called
            called = True

        with pytest.raises(AuthenticationError):
            await guard.with_auth(handler)(request_factory())

        assert called is False


class TestPolicySteps:
    async def test_block_ips(self, audit, request_factory):
        guard = Guard([block_ips(["10.0.0.1"])], audit)

        with pytest.raises(AuthorizationError):
            await guard.run(request_factory())

        assert audit.get_logs()[-1].action == "BLOCKED_IP"
        await guard.run(request_factory(client=("10.0.0.9", 1)))

    async def test_allow_ips(self, audit, request_factory):
        guard = Guard([allow_ips(["127.0.0.1"])], audit)

        await guard.run(request_factory(client=("127.0.0.1", 1)))
        with pytest.raises(AuthorizationError):
            await guard.run(request_factory())

    async def test_csrf_skips_safe_methods(self, services, request_factory):
        guard = Guard([require_csrf(services.csrf)], services.audit)

        await guard.run(request_factory(method="GET"))

    async def test_csrf_required_on_post(self, services, request_factory):
        guard = Guard([require_csrf(services.csrf)], services.audit)
        session_id = services.sessions.create_session("user_editor")
        token = services.csrf.generate_token(session_id)

        await guard.run(
            request_factory(
                method="POST",
                cookies={"session_id": session_id},
                headers={"X-CSRF-Token": token},
            )
        )

        with pytest.raises(AuthorizationError, match="CSRF"):
            await guard.run(
                request_factory(
                    method="POST",
                    cookies={"session_id": session_id},
                    headers={"X-CSRF-Token": "forged"},
                )
            )
        assert services.audit.get_logs()[-1].action == "CSRF_VIOLATION"

        with pytest.raises(AuthorizationError):
            await guard.run(request_factory(method="DELETE", headers={"X-CSRF-Token": token}))

    async def test_csrf_refuses_destroyed_session(self, services, request_factory):
        guard = Guard([require_csrf(services.csrf, services.sessions)], services.audit)
        session_id = services.sessions.create_session("user_editor")
        token = services.csrf.generate_token(session_id)
        request = dict(
            method="POST", cookies={"session_id": session_id}, headers={"X-CSRF-Token": token}
        )

        await guard.run(request_factory(**request))

        services.sessions.destroy_user_sessions("user_editor")
        with pytest.raises(AuthorizationError, match="CSRF"):
            await guard.run(request_factory(**request))
        assert services.audit.get_logs()[-1].action == "CSRF_VIOLATION"
