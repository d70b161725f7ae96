"""Organizations domain - organizations, members, invites and ownership"""
