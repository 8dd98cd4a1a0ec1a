"""explorer access, prompt building, llm reasoning and comparison"""
