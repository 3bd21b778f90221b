# Copyright (C) 2019-2021 Zilliz. All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not use this file except
# in compliance with the License. You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software distributed under the License
# is distributed on an "AS IS" BASIS, WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express
# or implied. See the License for the specific language governing permissions and limitations under
# the License.

DYNAMIC_FIELD_NAME = "$meta"
PLACEHOLDER_TAG = "$0"

RANKER_TYPE_RRF = "rrf"
RANKER_TYPE_WEIGHTED = "weighted"
DEFAULT_RRF_K = 60

# search param keys understood by the service
TOPK = "topk"
ROUND_DECIMAL = "round_decimal"
IGNORE_GROWING = "ignore_growing"
OFFSET = "offset"
LIMIT = "limit"
METRIC_TYPE = "metric_type"
ANNS_FIELD = "anns_field"
PARAMS = "params"
INDEX_TYPE = "index_type"
