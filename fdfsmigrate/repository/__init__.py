"""Package reserved for record repositories; it holds no modules."""