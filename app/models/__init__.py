from .user import User
from .workspace import Workspace, WorkspaceMember, MemberStatus
from .invite import WorkspaceInvite, InviteStatus
