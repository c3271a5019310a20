"""
Redis Lua scripts for refresh token bookkeeping.

Each script runs atomically on the server, so a read followed by a delete can
not interleave with another client's rotation of the same token.
"""

# KEYS[1] = refresh:{jti}
# ARGV[1] = now in epoch millis, ARGV[2] = subject index prefix, ARGV[3] = jti
# Returns 1 when the record was active and has been removed, 0 otherwise.
REVOKE_IF_ACTIVE_SCRIPT = """
local record_key = KEYS[1]
local now_ms = tonumber(ARGV[1])
local subject_prefix = ARGV[2]
local jti = ARGV[3]

local expires_at = redis.call('HGET', record_key, 'expires_at')
if not expires_at then
    return 0
end

if tonumber(expires_at) <= now_ms then
    return 0
end

local subject = redis.call('HGET', record_key, 'subject')
redis.call('DEL', record_key)
if subject then
    redis.call('SREM', subject_prefix .. subject, jti)
end

return 1
"""

# KEYS[1] = refresh:{old_jti}, KEYS[2] = refresh:{new_jti},
# KEYS[3] = refresh:subject:{subject}
# ARGV[1] = now in epoch millis, ARGV[2] = subject index prefix,
# ARGV[3] = old jti, ARGV[4] = new jti, ARGV[5] = subject,
# ARGV[6] = new expires_at in epoch millis, ARGV[7] = new ttl in millis
# Returns 1 when the old record was active and has been replaced, 0 otherwise.
ROTATE_REFRESH_TOKEN_SCRIPT = """
local old_key = KEYS[1]
local new_key = KEYS[2]
local subject_key = KEYS[3]
local now_ms = tonumber(ARGV[1])
local subject_prefix = ARGV[2]
local old_jti = ARGV[3]
local new_jti = ARGV[4]

local expires_at = redis.call('HGET', old_key, 'expires_at')
if not expires_at or tonumber(expires_at) <= now_ms then
    return 0
end

local old_subject = redis.call('HGET', old_key, 'subject')
redis.call('DEL', old_key)
if old_subject then
    redis.call('SREM', subject_prefix .. old_subject, old_jti)
end

redis.call('HSET', new_key, 'subject', ARGV[5], 'expires_at', ARGV[6])
redis.call('PEXPIRE', new_key, ARGV[7])
redis.call('SADD', subject_key, new_jti)

return 1
"""

# KEYS[1] = refresh:subject:{subject}
# ARGV[1] = record key prefix
# Returns the number of records removed.
REVOKE_ALL_FOR_SUBJECT_SCRIPT = """
local subject_key = KEYS[1]
local record_prefix = ARGV[1]

local removed = 0
for _, jti in ipairs(redis.call('SMEMBERS', subject_key)) do
    removed = removed + redis.call('DEL', record_prefix .. jti)
end
redis.call('DEL', subject_key)

return removed
"""
