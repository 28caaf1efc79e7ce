"""Conversation feature package: entities, repositories, service, controller and router.

Stores chat sessions and their messages, and runs each user turn through the
career counselor response generator.
"""
