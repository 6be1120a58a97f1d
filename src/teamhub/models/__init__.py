from .identity import Profile, Team, TeamMember, TeamInvitation, TeamRole, ProjectVisibility
from .auditing import ActivityLog
