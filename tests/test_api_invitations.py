"""
API tests for invitations.

Covers:
- Creating, listing and revoking invitations under the matrix
- Owner-only OWNER invitations
- Accepting by token: email match, expiry, duplicates
- Accepting creates the membership and consumes the invitation
"""

from datetime import datetime, timedelta

import pytest
from fastapi import status

from teamkit.database import utcnow
from teamkit.models import Invitation, Membership
from teamkit.core.roles import Role


def invitations_url(slug="acme", invitation_id=None):
    url = f"/api/v1/teams/{slug}/invitations"
    return f"{url}/{invitation_id}" if invitation_id else url


@pytest.fixture
def invite(client, auth_headers):
    def _invite(inviter, email, role="MEMBER", slug="acme"):
        return client.post(
            invitations_url(slug),
            json={"email": email, "role": role},
            headers=auth_headers(inviter),
        )
    return _invite


class TestCreateInvitation:

    def test_admin_invites_member(self, invite, world, audit_sink):
        response = invite(world["admin"], "NewBie@Example.com")

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["email"] == "newbie@example.com"
        assert body["role"] == "MEMBER"
        assert body["team_id"] == world["acme"].id
        assert body["token"]
        assert audit_sink.events[-1].action == "invitation.create"

    def test_member_cannot_invite(self, invite, world):
        response = invite(world["member"], "newbie@example.com")

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_outsider_cannot_invite(self, invite, world):
        response = invite(world["outsider"], "newbie@example.com")

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_only_owner_invites_owner(self, invite, world):
        by_admin = invite(world["admin"], "boss@example.com", role="OWNER")
        by_owner = invite(world["owner"], "boss@example.com", role="OWNER")

        assert by_admin.status_code == status.HTTP_403_FORBIDDEN
        assert by_owner.status_code == status.HTTP_201_CREATED

    def test_existing_member_cannot_be_invited(self, invite, world):
        response = invite(world["admin"], "member@example.com")

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_expiry_is_set(self, invite, world):
        body = invite(world["admin"], "newbie@example.com").json()

        expires_at = datetime.fromisoformat(body["expires_at"])
        assert timedelta(days=6) < expires_at - utcnow() <= timedelta(days=7)


class TestListAndRevoke:

    def test_member_lists_invitations_without_tokens(self, client, invite, world, auth_headers):
        invite(world["admin"], "newbie@example.com")

        response = client.get(invitations_url(), headers=auth_headers(world["member"]))

        assert response.status_code == status.HTTP_200_OK
        assert [i["email"] for i in response.json()] == ["newbie@example.com"]
        assert "token" not in response.json()[0]

    def test_listing_is_per_team(self, client, invite, world, auth_headers):
        invite(world["admin"], "newbie@example.com")

        response = client.get(invitations_url("beta"), headers=auth_headers(world["owner"]))

        assert response.json() == []

    def test_admin_revokes(self, client, db, invite, world, auth_headers):
        invitation_id = invite(world["admin"], "newbie@example.com").json()["id"]

        response = client.delete(
            invitations_url(invitation_id=invitation_id), headers=auth_headers(world["admin"])
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        db.expire_all()
        assert db.get(Invitation, invitation_id) is None

    def test_revoke_from_other_team_is_not_found(self, client, db, invite, world, make_user, add_member, auth_headers):
        invitation_id = invite(world["admin"], "newbie@example.com").json()["id"]
        beta_admin = make_user("beta-admin@example.com")
        add_member(beta_admin, world["beta"], Role.ADMIN)

        response = client.delete(
            invitations_url("beta", invitation_id), headers=auth_headers(beta_admin)
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        db.expire_all()
        assert db.get(Invitation, invitation_id) is not None


class TestAcceptInvitation:

    def accept(self, client, token, user, auth_headers):
        return client.post(f"/api/v1/invitations/{token}/accept", headers=auth_headers(user))

    def test_accept_joins_team_with_invited_role(
        self, client, db, invite, world, make_user, auth_headers, audit_sink
    ):
        body = invite(world["admin"], "newbie@example.com", role="ADMIN").json()
        newbie = make_user("newbie@example.com")

        response = self.accept(client, body["token"], newbie, auth_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["slug"] == "acme"
        assert response.json()["role"] == "ADMIN"

        db.expire_all()
        membership = db.query(Membership).filter(
            Membership.team_id == world["acme"].id, Membership.user_id == newbie.id
        ).one()
        assert membership.role == Role.ADMIN
        assert db.get(Invitation, body["id"]) is None

        event = audit_sink.events[-1]
        assert event.action == "member.join"
        assert event.crud == "c"
        assert event.actor_id == newbie.id

    def test_new_member_has_access(self, client, invite, world, make_user, auth_headers):
        token = invite(world["admin"], "newbie@example.com").json()["token"]
        newbie = make_user("newbie@example.com")

        self.accept(client, token, newbie, auth_headers)
        response = client.get("/api/v1/teams/acme/members", headers=auth_headers(newbie))

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 4

    def test_unknown_token(self, client, world, auth_headers):
        response = self.accept(client, "no-such-token", world["outsider"], auth_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_expired_invitation(self, client, db, invite, world, make_user, auth_headers):
        body = invite(world["admin"], "newbie@example.com").json()
        invitation = db.get(Invitation, body["id"])
        invitation.expires_at = utcnow() - timedelta(minutes=1)
        db.commit()

        response = self.accept(client, body["token"], make_user("newbie@example.com"), auth_headers)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_email_must_match(self, client, invite, world, auth_headers):
        token = invite(world["admin"], "newbie@example.com").json()["token"]

        response = self.accept(client, token, world["outsider"], auth_headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_already_a_member(self, client, invite, world, make_user, add_member, auth_headers):
        token = invite(world["admin"], "newbie@example.com").json()["token"]
        newbie = make_user("newbie@example.com")
        add_member(newbie, world["acme"], Role.MEMBER)

        response = self.accept(client, token, newbie, auth_headers)

        assert response.status_code == status.HTTP_409_CONFLICT
