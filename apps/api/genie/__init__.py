"""Project Genie API - organizations, projects and task tracking."""
