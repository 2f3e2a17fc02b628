from enum import Enum

# KEYS[1] = bitmap key, ARGV[1] = k, ARGV[2..k+1] = offsets

LUA_BLOOM_BATCH_GET_BITS = """
local bloomKey = KEYS[1]
local bitsCnt = tonumber(ARGV[1])
for i = 1, bitsCnt, 1 do
  local offset = ARGV[1 + i]
  local reply = redis.call('getbit', bloomKey, offset)
  if (not reply) then
    error('FAIL')
    return 0
  end
  if (reply == 0) then
    return 0
  end
end
return 1
"""

LUA_BLOOM_BATCH_SET_BITS = """
local bloomKey = KEYS[1]
local bitsCnt = tonumber(ARGV[1])
for i = 1, bitsCnt, 1 do
  local offset = ARGV[1 + i]
  redis.call('setbit', bloomKey, offset, 1)
end
return 1
"""


class ScriptKind(str, Enum):
    CHECK_ALL_SET = "check-all-set"
    SET_ALL = "set-all"


SCRIPTS = {
    ScriptKind.CHECK_ALL_SET: LUA_BLOOM_BATCH_GET_BITS,
    ScriptKind.SET_ALL: LUA_BLOOM_BATCH_SET_BITS,
}


def script_args(offsets) -> list:
    """ARGV for either script: the bit count followed by the offsets."""
    return [len(offsets), *offsets]
