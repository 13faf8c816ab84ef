"""Remote service providers.

Key Components:
    - IssueTracker: Abstract issue tracker interface
    - BuildServer: Abstract build server interface
    - JiraRestProvider: Jira REST API v2 implementation
    - TeamCityRestProvider: TeamCity REST API implementation
    - HTTPConnectionPool: Authenticated httpx client with error translation
"""
