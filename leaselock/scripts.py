"""
Leaselock - Lua Scripts

Server-side compare-then-act scripts. Redis runs each script atomically,
so no other client's command can land between the GET and the write.
"""

# Lua script for atomic renew: only reset TTL if the token holds the lock
# KEYS[1] = lock key
# ARGV[1] = owner token
# ARGV[2] = new TTL in seconds
# Returns: 1 if renewed, 0 if not owner or lock doesn't exist
RENEW_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if current == ARGV[1] then
    redis.call('EXPIRE', KEYS[1], ARGV[2])
    return 1
else
    return 0
end
"""

# Lua script for atomic release: only delete if the token holds the lock
# KEYS[1] = lock key
# ARGV[1] = owner token
# Returns: 1 if released, 0 if not owner or lock doesn't exist
RELEASE_SCRIPT = """
local current = redis.call('GET', KEYS[1])
if current == ARGV[1] then
    redis.call('DEL', KEYS[1])
    return 1
else
    return 0
end
"""
