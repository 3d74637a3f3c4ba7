"""
Profile Sync Service

Expenses and workspace rosters carry denormalized copies of a user's
display fields (name, avatar) so they can be shown without a directory
lookup. This is the one place those copies are reconciled.

CRITICAL: The cascade runs inside the profile-edit transition, against the
same snapshot, so no reader ever sees a renamed user next to expenses that
still carry the old name. It is not triggered by any other transition.
"""

from smartspend.models.ledger import AppState, User, Workspace, WorkspaceMember


class ProfileSyncService:
    """Propagates a user's display fields into dependent records."""

    def cascade_profile_edit(self, state: AppState, updated_user: User) -> AppState:
        """
        Return a snapshot where the directory entry, every expense owned by
        the user, and every roster entry for the user match `updated_user`.

        Records belonging to other users are reused untouched.
        """
        users = tuple(
            updated_user if user.id == updated_user.id else user
            for user in state.users
        )

        expenses = tuple(
            expense.model_copy(update={
                "owner_name": updated_user.name,
                "owner_avatar_ref": updated_user.avatar_ref,
            })
            if expense.owner_user_id == updated_user.id
            else expense
            for expense in state.expenses
        )

        workspaces = tuple(
            self._sync_roster(workspace, updated_user)
            for workspace in state.workspaces
        )

        return state.model_copy(update={
            "users": users,
            "expenses": expenses,
            "workspaces": workspaces,
        })

    @staticmethod
    def _sync_roster(workspace: Workspace, updated_user: User) -> Workspace:
        if not workspace.has_member(updated_user.id):
            return workspace
        members = tuple(
            WorkspaceMember.from_user(updated_user)
            if member.user_id == updated_user.id
            else member
            for member in workspace.members
        )
        return workspace.model_copy(update={"members": members})
